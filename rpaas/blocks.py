"""Configuration blocks attached to an instance."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from .errors import NotFoundError, ValidationError
from .models import BlockType, Value
from .store import ObjectStore, fetch_instance
from .values import resolve_value

logger = logging.getLogger(__name__)


@dataclass
class ConfigurationBlock:
    """A block name with its literal content."""

    name: str
    content: str = ""


class BlockManager:
    """Reads and edits the blocks of an instance."""

    def __init__(self, store: ObjectStore, namespace: str):
        self.store = store
        self.namespace = namespace

    def list_blocks(self, instance_name: str) -> Optional[List[ConfigurationBlock]]:
        """Return blocks ordered by name, or None when the instance has none."""
        instance = fetch_instance(self.store, self.namespace, instance_name)
        if not instance.spec.blocks:
            return None

        blocks = []
        for block_type, value in sorted(instance.spec.blocks.items(), key=lambda kv: kv[0].value):
            content = resolve_value(self.store, self.namespace, value)
            blocks.append(ConfigurationBlock(name=block_type.value, content=content))
        return blocks

    def update_block(self, instance_name: str, block: ConfigurationBlock) -> None:
        instance = fetch_instance(self.store, self.namespace, instance_name)

        block_type = BlockType.from_name(block.name)
        if block_type is None:
            raise ValidationError(f'block "{block.name}" is not allowed')

        if instance.spec.blocks is None:
            instance.spec.blocks = {}
        instance.spec.blocks[block_type] = Value(value=block.content)

        self.store.update_instance(instance)
        logger.info(f"Updated block {block.name} of instance {instance_name}")

    def delete_block(self, instance_name: str, block_name: str) -> None:
        instance = fetch_instance(self.store, self.namespace, instance_name)

        block_type = BlockType.from_name(block_name)
        if block_type is None or not instance.spec.blocks or block_type not in instance.spec.blocks:
            raise NotFoundError(f'block "{block_name}" not found')

        del instance.spec.blocks[block_type]
        if not instance.spec.blocks:
            instance.spec.blocks = None

        self.store.update_instance(instance)
        logger.info(f"Deleted block {block_name} of instance {instance_name}")
