"""
Data models for live calls tracked while a viewer has them open.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class CallStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class ActiveCall(BaseModel):
    customer_name: str = ""
    status: CallStatus = CallStatus.ACTIVE
    start_time: datetime
    end_time: Optional[datetime] = None


class StartPhoneCallRequest(BaseModel):
    customerName: Optional[str] = None
    phoneNumber: Optional[str] = None


class EndPhoneCallRequest(BaseModel):
    phoneNumber: Optional[str] = None
