from authdb.domain.shared.names import normalize_name
from authdb.domain.shared.serialization import (
    join_list,
    pack_fields,
    split_list,
    unpack_fields,
)
from authdb.domain.shared.time import (
    ensure_tz_aware,
    from_timestamp,
    to_timestamp,
    utc_now,
)

__all__ = [
    "ensure_tz_aware",
    "from_timestamp",
    "join_list",
    "normalize_name",
    "pack_fields",
    "split_list",
    "to_timestamp",
    "unpack_fields",
    "utc_now",
]
