# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Shared base model and time helpers - kept apart from the workflow and
tool models to prevent circular imports.
"""

import time
from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Base for records that travel as JSON.

    Attributes are snake_case in Python; the wire format uses camelCase
    (``nodeId``, ``executionTime``). Both spellings are accepted on input.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-compatible dict with wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)


def now_ms() -> float:
    """Wall-clock time in epoch milliseconds."""
    return round(time.time() * 1000, 3)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
