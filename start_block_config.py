import json
import logging
import os
import shutil
import time
from pathlib import Path

import config
from errors import ConfigError, PersistError

logger = logging.getLogger(__name__)

START_BLOCK_KEY = "network_start_block"


class StartBlockConfig:
    """
    The start block config document.

    Only `network_start_block` is touched; every other key is written back
    exactly as it was read.
    """

    def __init__(self, path, document=None):
        self.path = Path(path)
        self.document = document if document is not None else {}
        self.document.setdefault(START_BLOCK_KEY, {})

    @classmethod
    def load(cls, path=config.CONFIG_PATH):
        path = Path(path)
        try:
            document = json.loads(path.read_text())
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {path}") from e
        except OSError as e:
            raise ConfigError(f"Error reading config file {path}: {e}") from e
        except ValueError as e:
            raise ConfigError(f"Error parsing config file {path}: {e}") from e

        if not isinstance(document, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object.")
        start_blocks = document.get(START_BLOCK_KEY)
        if start_blocks is not None and not isinstance(start_blocks, dict):
            raise ConfigError(f"'{START_BLOCK_KEY}' in {path} must be an object.")
        return cls(path, document)

    @property
    def start_blocks(self):
        return self.document[START_BLOCK_KEY]

    def set_start_block(self, network_name, height):
        self.start_blocks[network_name] = int(height)

    def to_json(self):
        return json.dumps(self.document, indent=2)

    def backup(self, suffix=config.BACKUP_SUFFIX):
        """Copy the document on disk to <path><suffix>, e.g. config.json.old."""
        backup_path = self.path.with_name(self.path.name + suffix)
        try:
            shutil.copy2(self.path, backup_path)
        except OSError as e:
            raise PersistError(f"Error backing up config file to {backup_path}: {e}") from e
        logger.info("Backed up %s to %s", self.path, backup_path)
        return backup_path

    def _write_atomic(self, payload):
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp_path.write_text(payload)
            os.replace(tmp_path, self.path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    def save(self, max_retries=config.WRITE_MAX_RETRIES, retry_delay=config.WRITE_RETRY_DELAY):
        payload = self.to_json()
        for retry in range(max_retries):
            try:
                self._write_atomic(payload)
                return self.path
            except OSError as e:
                if retry < max_retries - 1:
                    logger.warning(
                        "Writing %s failed (%s). Retrying in %s seconds... (Attempt %d/%d)",
                        self.path, e, retry_delay, retry + 1, max_retries,
                    )
                    time.sleep(retry_delay)
                else:
                    raise PersistError(
                        f"Failed to write {self.path} after {max_retries} attempts: {e}"
                    ) from e
        raise PersistError(f"Failed to write {self.path}: no attempts made (max_retries={max_retries})")
