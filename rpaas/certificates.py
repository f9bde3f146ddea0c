"""TLS certificates served by an instance."""

import logging

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from .errors import ConflictError, ResourceNotFoundError, ValidationError
from .models import Secret, TLSSecret, TLSSecretItem
from .store import ObjectStore, fetch_instance

logger = logging.getLogger(__name__)

DEFAULT_CERTIFICATE_NAME = "default"


def validate_key_pair(certificate: bytes, key: bytes) -> None:
    """Check that both blobs are PEM and that the key matches the certificate."""
    try:
        cert = x509.load_pem_x509_certificate(certificate)
    except ValueError:
        raise ValidationError("could not parse the certificate")
    try:
        private_key = serialization.load_pem_private_key(key, password=None)
    except (TypeError, ValueError):
        raise ValidationError("could not parse the private key")
    if not _public_keys_match(cert, private_key):
        raise ValidationError("private key does not match the certificate")


def _public_keys_match(cert: x509.Certificate, private_key) -> bool:
    cert_bytes = cert.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    key_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return cert_bytes == key_bytes


class CertificateManager:
    """Stores certificate/key pairs in the instance's certificates Secret.

    Every pair is stored under `<name>.crt` and `<name>.key`.
    """

    def __init__(self, store: ObjectStore, namespace: str):
        self.store = store
        self.namespace = namespace

    def update_certificate(
        self, instance_name: str, name: str, certificate: bytes, key: bytes
    ) -> None:
        """Add or replace the pair called `name` ("default" when empty).

        Raises:
            NotFoundError: If the instance does not exist
            ValidationError: If the pair is not valid PEM or does not match
            ConflictError: If the same bytes are already deployed under `name`
        """
        instance = fetch_instance(self.store, self.namespace, instance_name)
        validate_key_pair(certificate, key)

        name = name or DEFAULT_CERTIFICATE_NAME
        item = TLSSecretItem(certificate_field=f"{name}.crt", key_field=f"{name}.key")

        bundle = instance.spec.certificates
        if bundle is None:
            bundle = TLSSecret(secret_name=f"{instance_name}-certificates")

        try:
            secret = self.store.get_secret(self.namespace, bundle.secret_name)
            exists = True
        except ResourceNotFoundError:
            secret = Secret(name=bundle.secret_name, namespace=self.namespace)
            exists = False

        # The Secret may hold the bytes from an attempt whose instance write failed
        if (item in bundle.items
                and secret.data.get(item.certificate_field) == certificate
                and secret.data.get(item.key_field) == key):
            raise ConflictError(f'certificate "{name}" already is deployed')

        secret.data[item.certificate_field] = certificate
        secret.data[item.key_field] = key
        if exists:
            self.store.update_secret(secret)
        else:
            self.store.create_secret(secret)

        if item not in bundle.items:
            bundle.items.append(item)
        instance.spec.certificates = bundle
        self.store.update_instance(instance)
        logger.info(f"Updated certificate {name} of instance {instance_name}")
