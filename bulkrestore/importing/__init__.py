"""Collection import: conversion, bulk writes, progress and orchestration."""

from bulkrestore.importing.batching import BULK_IMPORT_SIZE, iter_batches
from bulkrestore.importing.bulk_writer import BulkOutcome, BulkWriter, WriteErrorDetail
from bulkrestore.importing.converter import DocumentConverter
from bulkrestore.importing.orchestrator import ImportOrchestrator, ImportRunContext, ImportState, ImportStatus
from bulkrestore.importing.overwrite_params import ImportOption, generate_overwrite_params
from bulkrestore.importing.pipeline import CollectionImportPipeline
from bulkrestore.importing.plan import build_import_settings
from bulkrestore.importing.progress import CollectionProgress, ImportingStatus, ProgressTracker
from bulkrestore.importing.settings import ImportMode, ImportSettings

__all__ = [
    "BULK_IMPORT_SIZE",
    "BulkOutcome",
    "BulkWriter",
    "CollectionImportPipeline",
    "CollectionProgress",
    "DocumentConverter",
    "ImportMode",
    "ImportOption",
    "ImportOrchestrator",
    "ImportRunContext",
    "ImportSettings",
    "ImportState",
    "ImportStatus",
    "ImportingStatus",
    "ProgressTracker",
    "WriteErrorDetail",
    "build_import_settings",
    "generate_overwrite_params",
    "iter_batches",
]
