from typing import Any, Dict

from sqlalchemy import JSON
from sqlalchemy.orm import DeclarativeBase
from vrfraffle.db.metadata import metadata_obj


class Base(DeclarativeBase):
    """Declarative base for raffle tables, sharing the naming convention."""

    metadata = metadata_obj
    type_annotation_map = {
        dict: JSON,
        Dict[str, Any]: JSON,
    }
