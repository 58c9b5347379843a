"""Pydantic request / response schemas.

Wire format is camelCase (``scanDetails``, ``threatLevel`` ...); Python code
uses the snake_case attribute names.
"""

from typing import Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


ScanStatus = Literal["safe", "suspicious", "malicious", "error"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ── Scorer output ──
class ScanChecks(FrozenCamelModel):
    https_enabled: bool
    suspicious_characters: bool = False
    shortener_service: bool = False
    domain_reputation: str = "clean"
    redirect_analysis: str = "none"
    certificate_valid: bool = True
    threat_intelligence: str = "clean"


class ScanDetails(FrozenCamelModel):
    domain: str
    protocol: str
    threat_level: int = Field(..., ge=0)
    detected_patterns: Tuple[str, ...] = ()
    checks: ScanChecks
    scan_timestamp: str
    scan_version: str


class ScanErrorDetails(FrozenCamelModel):
    error: str
    error_details: str


class ScanResult(FrozenCamelModel):
    status: ScanStatus
    scan_details: Union[ScanDetails, ScanErrorDetails]

    def details_dict(self) -> dict:
        return self.scan_details.model_dump(mode="json", by_alias=True)


# ── Scans API ──
class ScanLinkRequest(BaseModel):
    url: str


class ScanLinkResponse(CamelModel):
    id: Optional[int] = None
    url: str
    status: ScanStatus
    scan_details: dict
    scanned_at: Optional[str] = None


class ScanStatRow(CamelModel):
    status: ScanStatus
    count: int
    scan_date: Optional[str] = None


# ── Users ──
class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
