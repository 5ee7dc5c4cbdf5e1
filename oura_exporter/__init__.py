"""Oura Exporter - polls the Oura API and exports to InfluxDB and pub/sub."""

from .client import OuraClient
from .config import Config, Person, load_config
from .exceptions import (
    ConfigurationError,
    FetchError,
    MissingSubResourceError,
    NonFiniteValueError,
    OuraExporterError,
    ParsingError,
    SerializationError,
    SinkError,
    UnknownEnumVariantError,
)
from .fanout import ExportSummary, export_records
from .pipeline import ExportPipeline, PollWindow, pipeline_from_config
from .poller import Poller
from .records import (
    ErrorRecord,
    HeartRate,
    HeartRateVariability,
    Readiness,
    Record,
    Sleep,
    SleepPhase,
)

__version__ = "0.1.0"

__all__ = [
    "OuraClient",
    "Config",
    "Person",
    "load_config",
    "OuraExporterError",
    "ParsingError",
    "UnknownEnumVariantError",
    "MissingSubResourceError",
    "NonFiniteValueError",
    "FetchError",
    "SerializationError",
    "SinkError",
    "ConfigurationError",
    "Poller",
    "ExportPipeline",
    "PollWindow",
    "pipeline_from_config",
    "ExportSummary",
    "export_records",
    "Record",
    "HeartRate",
    "HeartRateVariability",
    "Sleep",
    "SleepPhase",
    "Readiness",
    "ErrorRecord",
]
