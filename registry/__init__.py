"""Registry module - Field metadata and resolution strategies."""

from .series_registry import (
    FieldMeta,
    FIELD_MAPPING,
    MetadataResolver,
    ExplicitMappingResolver,
    HeuristicResolver,
    detect_date_column,
    series_id_from_name,
    resolver_for_format,
)

__all__ = [
    'FieldMeta',
    'FIELD_MAPPING',
    'MetadataResolver',
    'ExplicitMappingResolver',
    'HeuristicResolver',
    'detect_date_column',
    'series_id_from_name',
    'resolver_for_format',
]
