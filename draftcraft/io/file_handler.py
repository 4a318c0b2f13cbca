"""File handling utilities."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml


class FileHandler:
    """Handles reading and writing the JSON and YAML files DraftCraft uses."""

    def read_json(self, file_path: Union[str, Path]) -> Any:
        """Read JSON file."""
        path = Path(file_path)
        with path.open('r', encoding='utf-8') as f:
            return json.load(f)

    def write_json(self, file_path: Union[str, Path], data: Any) -> None:
        """Write JSON file atomically so a crash never leaves half a file."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def append_jsonl(self, file_path: Union[str, Path], record: Dict[str, Any]) -> None:
        """Append one record as a JSON line."""
        path = Path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open('a', encoding='utf-8') as f:
            f.write(json.dumps(record, ensure_ascii=False) + "\n")

    def read_yaml(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Read YAML file."""
        path = Path(file_path)
        with path.open('r', encoding='utf-8') as f:
            return yaml.safe_load(f) or {}

    def delete_file(self, file_path: Union[str, Path]) -> bool:
        """Remove a file; returns False if it was not there."""
        path = Path(file_path)
        if not path.exists():
            return False
        path.unlink()
        return True

    def list_files(self, directory: Union[str, Path], pattern: str = "*.json") -> List[Path]:
        """List files in a directory matching a glob pattern."""
        path = Path(directory)
        if not path.is_dir():
            return []
        return sorted(p for p in path.glob(pattern) if p.is_file())
