"""
Local persistence for the task collection

LocalStorage is a small JSON-file key/value store with the same contract as
browser local storage. TaskStorage keeps the whole collection encrypted under
one key.
"""

import json
from pathlib import Path
from typing import Dict, Optional
from pydantic import ValidationError as PydanticValidationError
from worknotes.config.constants import STORAGE_KEY
from worknotes.models.task import Task, TaskCollection, tasks_to_storage
from worknotes.services.encryption import EncryptionCodec
from worknotes.utils.logger import logger


class LocalStorage:
    """Key/value string store backed by a JSON file"""

    def __init__(self, storage_file: str):
        """
        Initialize local storage

        Args:
            storage_file: Path to the JSON file holding all keys
        """
        self.storage_file = Path(storage_file)
        self.logger = logger

    def _read(self) -> Dict[str, str]:
        try:
            if not self.storage_file.exists():
                return {}
            with open(self.storage_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                self.logger.warning(f"Local storage file {self.storage_file} is not an object, ignoring it")
                return {}
            return data
        except (OSError, ValueError) as e:
            self.logger.warning(f"Failed to read local storage: {e}")
            return {}

    def _write(self, data: Dict[str, str]):
        self.storage_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.storage_file.with_suffix(self.storage_file.suffix + ".tmp")
        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        tmp_file.replace(self.storage_file)

    def get_item(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set_item(self, key: str, value: str):
        data = self._read()
        data[key] = value
        self._write(data)

    def remove_item(self, key: str):
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def clear(self):
        self._write({})


class TaskStorage:
    """Saves and loads the encrypted task collection"""

    def __init__(self, local_storage: LocalStorage, codec: EncryptionCodec, storage_key: str = STORAGE_KEY):
        self.local_storage = local_storage
        self.codec = codec
        self.storage_key = storage_key
        self.logger = logger

    def save_tasks(self, collection: TaskCollection, user_id: Optional[str] = None) -> bool:
        """
        Save tasks to local storage with encryption

        Args:
            collection: Tasks to save
            user_id: Optional user id for encryption

        Returns:
            True if the record was written
        """
        try:
            encrypted = self.codec.encrypt(tasks_to_storage(collection), user_id)
            self.local_storage.set_item(self.storage_key, encrypted)
            return True
        except (OSError, TypeError, ValueError) as e:
            self.logger.error(f"Error saving tasks to local storage: {e}")
            return False

    def load_tasks(self, user_id: Optional[str] = None) -> TaskCollection:
        """
        Load tasks from local storage with decryption

        Args:
            user_id: Optional user id used for encryption

        Returns:
            Validated task collection, empty on missing or corrupt data
        """
        saved = self.local_storage.get_item(self.storage_key)
        if not saved:
            return {}

        data = self.codec.decrypt(saved, user_id)

        if not isinstance(data, dict):
            self.logger.warning("Invalid data format in local storage, returning empty collection")
            return {}

        collection: TaskCollection = {}
        for date, entries in data.items():
            if not isinstance(entries, list):
                self.logger.warning(f"Tasks for date {date} is not a list, skipping")
                continue

            tasks = []
            for entry in entries:
                try:
                    tasks.append(Task.model_validate(entry))
                except PydanticValidationError as e:
                    self.logger.warning(f"Skipping invalid task under {date}: {e.error_count()} error(s)")

            if tasks:
                collection[date] = tasks

        self.logger.debug(f"Loaded {sum(len(t) for t in collection.values())} tasks from local storage")
        return collection

    def clear_tasks(self):
        """Remove the stored task record"""
        try:
            self.local_storage.remove_item(self.storage_key)
        except OSError as e:
            self.logger.warning(f"Failed to clear local tasks: {e}")
