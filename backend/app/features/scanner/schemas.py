# backend/app/features/scanner/schemas.py
"""API request/response schemas for the scanner."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .models import HttpScanConfig, PortScanConfig, ScanProgress, ScanSummary, TestConfig


class HttpScanStartRequest(BaseModel):
    """Request to start an endpoint scan."""

    project_id: Optional[str] = Field(
        default=None, description="Project to scan (defaults to the selected project)"
    )
    check_status: bool = Field(default=False, description="Require status 200 when an endpoint sets none")
    check_content: bool = Field(default=False, description="Require expected content in the body")
    expected_content: str = Field(default="", max_length=4096)

    def to_config(self) -> HttpScanConfig:
        return HttpScanConfig(
            project_id=self.project_id,
            test=TestConfig(
                check_status=self.check_status,
                check_content=self.check_content,
                expected_content=self.expected_content,
            ),
        )


class PortScanStartRequest(BaseModel):
    """Request to start a port scan."""

    target: Optional[str] = Field(
        default=None, max_length=255, description="Host or IP (defaults to the project's IP)"
    )
    project_id: Optional[str] = None
    scan_type: Literal["common", "range", "custom"] = "common"
    port_range: str = Field(default="1-1000", max_length=32)
    custom_ports: str = Field(default="", max_length=4096)

    @field_validator("target")
    @classmethod
    def validate_target(cls, v: Optional[str]) -> Optional[str]:
        """Reject targets that carry a scheme or path."""
        if v and ("/" in v or " " in v.strip()):
            raise ValueError("Target must be a bare host name or IP address")
        return v

    def to_config(self) -> PortScanConfig:
        return PortScanConfig(**self.model_dump())


class SelectProjectRequest(BaseModel):
    project_id: str = Field(..., min_length=1)


class ScanStartResponse(BaseModel):
    """Response after starting a scan."""

    surface: str
    total: int
    message: str = "Scan started"


class ScanActionResponse(BaseModel):
    """Response for pause/resume/stop/clear."""

    accepted: bool
    status: ScanProgress


class ScanStatusResponse(BaseModel):
    """Response for scan status queries."""

    status: ScanProgress
    last_summary: Optional[ScanSummary] = None


class EndpointTestRequest(BaseModel):
    """Request to test a single endpoint."""

    check_status: bool = False
    check_content: bool = False
    expected_content: str = Field(default="", max_length=4096)

    def to_test_config(self) -> TestConfig:
        return TestConfig(**self.model_dump())
