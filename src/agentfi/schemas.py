"""Pydantic schemas for the HTTP API and for the Fi tool payloads."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Body of POST /api/chat. Presence is checked by the handler so a missing
    field yields 400 rather than FastAPI's 422."""

    model_config = ConfigDict(populate_by_name=True)

    message: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")


class ChatResponse(BaseModel):
    reply: str


class ErrorResponse(BaseModel):
    error: str


class AssetEntry(BaseModel):
    type: str
    value: int


class DashboardSnapshot(BaseModel):
    """Flat dashboard summary returned by GET /api/dashboard."""

    model_config = ConfigDict(populate_by_name=True)

    net_worth: int = Field(alias="netWorth")
    assets: List[AssetEntry]
    credit_score: int = Field(alias="creditScore")


# Fi tool payloads. Only the fields the dashboard reads are declared; the
# rest of each document is ignored.


class Money(BaseModel):
    units: int


class NetWorthAssetValue(BaseModel):
    net_worth_attribute: str = Field(alias="netWorthAttribute")
    value: Money


class NetWorthResponse(BaseModel):
    total_net_worth_value: Money = Field(alias="totalNetWorthValue")
    asset_values: List[NetWorthAssetValue] = Field(alias="assetValues")


class NetWorthPayload(BaseModel):
    """Decoded text of a fetch_net_worth result."""

    net_worth_response: NetWorthResponse = Field(alias="netWorthResponse")


class BureauScore(BaseModel):
    bureau_score: int = Field(alias="bureauScore")


class CreditReportData(BaseModel):
    score: BureauScore


class CreditReport(BaseModel):
    credit_report_data: CreditReportData = Field(alias="creditReportData")


class CreditReportPayload(BaseModel):
    """Decoded text of a fetch_credit_report result."""

    credit_reports: List[CreditReport] = Field(alias="creditReports", min_length=1)
