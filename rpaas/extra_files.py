"""Extra files delivered to the replicas of an instance."""

import hashlib
import logging
from dataclasses import dataclass
from typing import Dict, List

from .errors import ConflictError, NotFoundError, ResourceNotFoundError, RpaasError, ValidationError
from .models import ConfigMap, FilesRef, RpaasInstance
from .paths import convert_path_to_config_map_key, is_path_valid
from .store import ObjectStore, fetch_instance

logger = logging.getLogger(__name__)


@dataclass
class File:
    """A file identified by its relative path."""

    name: str
    content: bytes = b""


def _content_hash(data: Dict[str, bytes]) -> str:
    digest = hashlib.sha256()
    for key in sorted(data):
        digest.update(key.encode())
        digest.update(b"\0")
        digest.update(data[key])
        digest.update(b"\0")
    return digest.hexdigest()[:10]


class ExtraFileManager:
    """Keeps the file index on the instance and the bytes in a ConfigMap.

    The ConfigMap name carries a hash of its content, so every change produces
    a new ConfigMap and replicas see a consistent set of files.
    """

    def __init__(self, store: ObjectStore, namespace: str):
        self.store = store
        self.namespace = namespace

    def get_extra_files(self, instance_name: str) -> List[File]:
        instance = fetch_instance(self.store, self.namespace, instance_name)
        ref = instance.spec.extra_files
        if ref is None:
            return []

        config_map = self.store.get_config_map(self.namespace, ref.name)
        return [
            File(name=path, content=config_map.binary_data.get(key, b""))
            for key, path in sorted(ref.files.items(), key=lambda kv: kv[1])
        ]

    def create_extra_files(self, instance_name: str, *files: File) -> None:
        """Add new files. Existing paths are rejected, never overwritten."""
        instance = fetch_instance(self.store, self.namespace, instance_name)
        for f in files:
            if not is_path_valid(f.name):
                raise ValidationError(f'filename "{f.name}" is not valid')

        index, data = self._load(instance)
        for f in files:
            key = convert_path_to_config_map_key(f.name)
            if f.name in index.values() or key in index:
                raise ConflictError(f'file "{f.name}" already exists')
            index[key] = f.name
            data[key] = f.content

        self._save(instance, index, data)
        logger.info(f"Added {len(files)} extra file(s) to instance {instance_name}")

    def update_extra_files(self, instance_name: str, *files: File) -> None:
        """Replace the content of existing files. Never creates files."""
        instance = fetch_instance(self.store, self.namespace, instance_name)
        if instance.spec.extra_files is None:
            raise NotFoundError("there are no extra files")

        index, data = self._load(instance)
        for f in files:
            key = convert_path_to_config_map_key(f.name)
            if key not in index:
                raise NotFoundError(f'file "{f.name}" does not exist')
            data[key] = f.content

        self._save(instance, index, data)
        logger.info(f"Updated {len(files)} extra file(s) of instance {instance_name}")

    def delete_extra_files(self, instance_name: str, *names: str) -> None:
        instance = fetch_instance(self.store, self.namespace, instance_name)
        if instance.spec.extra_files is None:
            raise NotFoundError("there are no extra files")

        index, data = self._load(instance)
        for name in names:
            key = convert_path_to_config_map_key(name)
            if key not in index:
                raise NotFoundError(f'file "{name}" does not exist')
            del index[key]
            data.pop(key, None)

        if index:
            self._save(instance, index, data)
        else:
            old_name = instance.spec.extra_files.name
            instance.spec.extra_files = None
            self.store.update_instance(instance)
            self._delete_config_map(old_name)
        logger.info(f"Deleted {len(names)} extra file(s) of instance {instance_name}")

    def _load(self, instance: RpaasInstance):
        ref = instance.spec.extra_files
        if ref is None:
            return {}, {}
        config_map = self.store.get_config_map(self.namespace, ref.name)
        return dict(ref.files), dict(config_map.binary_data)

    def _save(self, instance: RpaasInstance, index: Dict[str, str], data: Dict[str, bytes]) -> None:
        old_name = instance.spec.extra_files.name if instance.spec.extra_files else ""
        new_name = f"{instance.name}-extra-files-{_content_hash(data)}"

        config_map = ConfigMap(
            name=new_name,
            namespace=self.namespace,
            binary_data=data,
            labels={"rpaas.extensions.tsuru.io/instance-name": instance.name},
        )
        try:
            self.store.get_config_map(self.namespace, new_name)
            self.store.update_config_map(config_map)
        except ResourceNotFoundError:
            self.store.create_config_map(config_map)

        instance.spec.extra_files = FilesRef(name=new_name, files=index)
        try:
            self.store.update_instance(instance)
        except RpaasError:
            if new_name != old_name:
                self._delete_config_map(new_name)
            raise

        if old_name and old_name != new_name:
            self._delete_config_map(old_name)

    def _delete_config_map(self, name: str) -> None:
        try:
            self.store.delete_config_map(self.namespace, name)
        except ResourceNotFoundError:
            logger.debug(f"Extra files configmap {name} already gone")
