"""Hypothesis strategies for bulkrestore property-based testing.

Usage:
    from hypothesis import given
    from tests.strategies import page_record_strategy

    @given(page_record_strategy())
    def test_conversion(record):
        ...

Strategies are organized by domain:
- records: exported records as they appear in an archive
- adversarial: hostile archive entry names and malformed record files
"""

from tests.strategies.adversarial import (
    malformed_records_strategy,
    path_traversal_strategy,
)
from tests.strategies.records import (
    epoch_millis_strategy,
    iso_date_strategy,
    object_id_hex_strategy,
    page_record_strategy,
    revision_record_strategy,
)

__all__ = [
    # Records
    "epoch_millis_strategy",
    "iso_date_strategy",
    "object_id_hex_strategy",
    "page_record_strategy",
    "revision_record_strategy",
    # Adversarial
    "malformed_records_strategy",
    "path_traversal_strategy",
]
