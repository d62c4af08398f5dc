from .preprocessing import (
    EXCLUDE_PATTERNS,
    EXPECTED_PROCESSED_COLUMNS,
    SchemaError,
    exclude_columns,
    drop_incomplete_rows,
    check_schema,
    check_reference_shape,
    prepare,
    process_dataset,
)

__all__ = [
    "EXCLUDE_PATTERNS",
    "EXPECTED_PROCESSED_COLUMNS",
    "SchemaError",
    "exclude_columns",
    "drop_incomplete_rows",
    "check_schema",
    "check_reference_shape",
    "prepare",
    "process_dataset",
]
