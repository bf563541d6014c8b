"""
CDC job identity.

The identity is a content address of (database, sorted distinct table names,
full-sync flag), so resubmitting an equivalent request yields the same id.
"""

import hashlib
from typing import Iterable

from cdc_control.domain.job_type import CDC, marshal_job_id

JOB_ID_FIELD_SEPARATOR = "|"


def marshal_cdc_job_id_left_part(database_name: str, schema_table_names: Iterable[str], full: bool) -> str:
    text = JOB_ID_FIELD_SEPARATOR.join(
        (database_name, ",".join(sorted(set(schema_table_names))), str(full).lower())
    )
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def generate_cdc_job_id(database_name: str, schema_table_names: Iterable[str], full: bool) -> str:
    return marshal_job_id(CDC, marshal_cdc_job_id_left_part(database_name, schema_table_names, full))
