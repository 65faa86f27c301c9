"""
Cost snapshot management for the dashboard and CLI.

Loads a cost export once, normalizes and indexes it, and hands out
per-request explorer sessions that share the read-only fact table.
"""

import logging
import time
from pathlib import Path
from typing import Any

from ...engine.selection import SelectionState
from ...engine.session import CostExplorer
from ...providers.base import RecordLoadError, SourceFactory
from ...providers.cost_export import load_cost_records
from ...utils.data_normalizer import FactNormalizer

logger = logging.getLogger(__name__)


class ReportDataManager:
    """Owns the loaded cost snapshot and builds explorer sessions from it."""

    def __init__(self, config=None):
        self.config = config
        self._explorer: CostExplorer | None = None
        self._source_path: Path | None = None
        self._loaded_at: float | None = None

    def _engine_options(self) -> dict[str, Any]:
        if self.config is None:
            return {}
        return {
            "top_n": self.config.top_n,
            "other_epsilon": self.config.other_epsilon,
            "trend_window_days": int(self.config.get_engine_option("trend_window_days", 3)),
            "trend_flat_threshold": float(self.config.get_engine_option("trend_flat_threshold", 2.0)),
        }

    def _normalizer(self) -> FactNormalizer:
        if self.config is None:
            return FactNormalizer()
        return FactNormalizer(
            exchange_rates=self.config.exchange_rates,
            default_currency=self.config.normalizer.get("default_currency", "USD"),
        )

    def load_file(self, path: str | Path, source_type: str | None = None) -> CostExplorer:
        """Load a JSON or CSV export from disk and index it."""
        start = time.time()
        records = load_cost_records(path, source_type=source_type)
        explorer = self.load_records(records)
        self._source_path = Path(path)
        logger.info(f"Loaded {path} in {time.time() - start:.3f}s ({len(explorer.rows)} rows)")
        return explorer

    def load_source(self, source_type: str, source_config: dict[str, Any]) -> CostExplorer:
        """Load through any registered record source."""
        source = SourceFactory.create_source(source_type, source_config)
        return self.load_records(source.load_records())

    def load_records(self, records) -> CostExplorer:
        result = self._normalizer().normalize(records)
        self._explorer = CostExplorer.from_normalized(result, **self._engine_options())
        self._loaded_at = time.time()
        if result.skipped_records:
            logger.warning(f"Skipped {result.skipped_records} records with unusable dates")
        return self._explorer

    @property
    def is_loaded(self) -> bool:
        return self._explorer is not None

    @property
    def explorer(self) -> CostExplorer:
        if self._explorer is None:
            raise RecordLoadError("No cost data has been loaded", str(self._source_path or ""))
        return self._explorer

    @property
    def source_path(self) -> Path | None:
        return self._source_path

    def session_for(self, selection_data: dict[str, Any] | None) -> CostExplorer:
        """
        An explorer bound to the selection stored in the browser.

        Each callback gets its own SelectionState, so concurrent users never
        share mutable selection state; the fact table and index are shared.
        """
        selection = SelectionState.from_dict(selection_data or {})
        return self.explorer.with_selection(selection)
