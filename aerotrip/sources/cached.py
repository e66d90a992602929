import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)


class CachedSource:
    """
    Base class for sources that cache downloaded data on disk.

    Data is stored under ``{cache_dir}/{source_name}/{key}.{ext}``. The
    ``key`` must correspond to a ``fetch_{key}`` method of the implementing
    class, which is called when the cache is missing or older than
    ``max_age_days``.

    Supported formats are ``csv`` (pandas DataFrame), ``json`` and ``html``
    (text). A ``param`` passed to ``get_data`` is handed to the fetch method
    and appended to the cache key.
    """

    def __init__(self, cache_dir: str):
        """
        Initialize the cached source.

        Args:
            cache_dir: Base directory for caching
        """
        self.cache_dir = Path(cache_dir)
        self.source_name = self.__class__.__name__.lower()
        self.cache_path = self.cache_dir / self.source_name
        self.cache_path.mkdir(parents=True, exist_ok=True)
        self._force_refresh = False
        self._never_refresh = False

    def set_force_refresh(self, force_refresh: bool = True) -> None:
        self._force_refresh = force_refresh

    def set_never_refresh(self, never_refresh: bool = True) -> None:
        """Use cached data whenever it exists, regardless of age."""
        self._never_refresh = never_refresh

    def _get_cache_file(self, key: str, ext: str) -> Path:
        return self.cache_path / f"{key}.{ext}"

    def _is_cache_valid(self, cache_file: Path, max_age_days: Optional[int] = None) -> Tuple[bool, Optional[str]]:
        """
        Check if the cache file exists and is recent enough.

        Returns:
            (is_valid, reason if invalid)
        """
        if self._force_refresh:
            return False, "force refresh"
        if not cache_file.exists():
            return False, "missing"
        if self._never_refresh or max_age_days is None:
            return True, None
        file_age = datetime.now() - datetime.fromtimestamp(cache_file.stat().st_mtime)
        if file_age.days <= max_age_days:
            return True, None
        return False, "expired"

    def _save_to_cache(self, data: Any, key: str, ext: str) -> None:
        cache_file = self._get_cache_file(key, ext)
        if ext == 'json':
            with open(cache_file, 'w') as f:
                json.dump(data, f)
        elif ext == 'csv':
            frame = data if isinstance(data, pd.DataFrame) else pd.DataFrame(data)
            frame.to_csv(cache_file, index=False)
        elif ext == 'html':
            cache_file.write_text(data, encoding='utf-8')
        else:
            raise ValueError(f"Unsupported file extension: {ext}")

    def _load_from_cache(self, key: str, ext: str) -> Any:
        cache_file = self._get_cache_file(key, ext)
        if ext == 'json':
            with open(cache_file, 'r') as f:
                return json.load(f)
        elif ext == 'csv':
            return pd.read_csv(cache_file, keep_default_na=False, na_values=[''])
        elif ext == 'html':
            return cache_file.read_text(encoding='utf-8')
        raise ValueError(f"Unsupported file extension: {ext}")

    def get_data(self, key: str, ext: str, param: Optional[str] = None, max_age_days: Optional[int] = None) -> Any:
        """
        Get data from cache or fetch it if not available.

        Args:
            key: Data key; ``fetch_{key}`` is called on a cache miss
            ext: File extension (csv, json or html)
            param: Optional parameter passed to ``fetch_{key}``; the data is
                then cached under ``{key}_{param}``
            max_age_days: Maximum age of cache in days (None for no limit)

        Raises:
            NotImplementedError: If the fetch method doesn't exist
            ValueError: If the file extension is not supported
        """
        cache_key = key if param is None else f"{key}_{param}"
        cache_file = self._get_cache_file(cache_key, ext)

        is_valid, reason = self._is_cache_valid(cache_file, max_age_days)
        if is_valid:
            logger.info(f"{cache_file.name} retrieved from cache {self.source_name}")
            return self._load_from_cache(cache_key, ext)

        method_name = f"fetch_{key}"
        if not hasattr(self, method_name):
            raise NotImplementedError(
                f"No fetch method found for key '{key}'. "
                f"Class {self.__class__.__name__} must implement a method named '{method_name}'."
            )

        fetch = getattr(self, method_name)
        data = fetch() if param is None else fetch(param)
        self._save_to_cache(data, cache_key, ext)
        logger.info(f"{cache_file.name} [{reason}] fetched using {method_name}")
        return data
