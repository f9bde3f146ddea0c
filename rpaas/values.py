"""Resolution of inline-or-referenced values."""

import logging
from typing import Optional

from .errors import NotFoundError, ResourceNotFoundError
from .models import Value
from .store import ObjectStore

logger = logging.getLogger(__name__)


def resolve_value(store: ObjectStore, namespace: str, value: Optional[Value]) -> str:
    """Return the literal content of a value.

    Inline values are returned as-is. A ConfigMap reference is looked up in the
    reference's namespace, falling back to `namespace`. When the ConfigMap or
    the key is missing, a required reference raises and any other resolves to
    an empty string.
    """
    if value is None:
        return ""
    if value.value_from is None or value.value_from.config_map_key_ref is None:
        return value.value

    ref = value.value_from.config_map_key_ref
    ns = value.value_from.namespace or namespace

    try:
        config_map = store.get_config_map(ns, ref.name)
    except ResourceNotFoundError:
        if ref.required:
            raise
        logger.debug(f"Optional configmap {ns}/{ref.name} not found")
        return ""

    if ref.key not in config_map.data:
        if ref.required:
            raise NotFoundError(f'key "{ref.key}" not found in configmap "{ref.name}"')
        return ""

    return config_map.data[ref.key]
