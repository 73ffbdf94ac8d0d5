# src/crashrisk/adapters/providers/manual.py
"""
Manual Dataset Provider - Hand-maintained Monthly Series

CAPE, margin debt / GDP and the Buffett indicator have no free real-time
API. Their latest values live in a JSON file that is updated by hand:

    {
      "updatedAt": "2025-10-01",
      "indicators": {
        "cape": {"value": 39.2, "date": "2025-09-30"},
        ...
      }
    }

The file is read on every fetch; the revalidation cache decides how often
that happens.

Files that USE this module:
- crashrisk.application.aggregator (manual indicator source)
- tests.test_providers (unit tests)

Files that this module USES:
- crashrisk.adapters.providers.base (SeriesProvider)
- crashrisk.config (settings.manual_data_file)
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from crashrisk.adapters.providers.base import SeriesProvider
from crashrisk.adapters.providers.fred import observation_timestamp
from crashrisk.config import settings
from crashrisk.domain.errors import ErrorCode, ProviderError, TransportError
from crashrisk.domain.models import SeriesValue
from crashrisk.shared.validators import parse_numeric

log = logging.getLogger(__name__)

PROVIDER_NAME = "manual"


def parse_dataset(payload: Any) -> Dict[str, SeriesValue]:
    """
    Parse the manual dataset into key -> SeriesValue.

    Entries without a numeric value are skipped; a dataset with no usable
    entry at all is an error.

    Raises:
        ProviderError: INVALID_RESPONSE when the document has the wrong shape
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("indicators"), dict):
        raise ProviderError("manual dataset has no 'indicators' object", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)

    default_date = payload.get("updatedAt")
    out: Dict[str, SeriesValue] = {}
    for key, entry in payload["indicators"].items():
        if not isinstance(entry, dict):
            continue
        value = parse_numeric(entry.get("value"))
        if value is None:
            log.warning("Manual dataset entry %s has no numeric value", key)
            continue
        out[key] = SeriesValue(
            value=value,
            timestamp=observation_timestamp(entry.get("date") or default_date),
            source=PROVIDER_NAME,
        )

    if not out:
        raise ProviderError("manual dataset has no usable values", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME)
    return out


class ManualDatasetProvider(SeriesProvider):
    name = PROVIDER_NAME

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else Path(settings.manual_data_file)

    def load(self) -> Dict[str, SeriesValue]:
        """
        Read and parse the dataset file.

        Raises:
            TransportError: When the file cannot be read
            ProviderError: When the content is not a valid dataset
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            log.warning("Cannot read manual dataset %s: %s", self.path, e)
            raise TransportError(f"cannot read {self.path}: {e}", provider=PROVIDER_NAME) from e

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            log.warning("Manual dataset %s is not valid JSON: %s", self.path, e)
            raise ProviderError(f"invalid JSON in {self.path}", ErrorCode.INVALID_RESPONSE, PROVIDER_NAME) from e

        return parse_dataset(payload)

    def latest(self, series_id: str) -> SeriesValue:
        values = self.load()
        if series_id not in values:
            raise ProviderError(
                f"{series_id} missing from manual dataset",
                ErrorCode.INVALID_RESPONSE,
                PROVIDER_NAME,
            )
        return values[series_id]
