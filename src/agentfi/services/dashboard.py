import logging
from typing import Any, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..errors import DashboardDataError
from ..models import ToolInvocation
from ..schemas import (
    AssetEntry,
    CreditReportPayload,
    DashboardSnapshot,
    NetWorthPayload,
)
from .tool_relay import ToolRelayClient, unwrap_tool_result

logger = logging.getLogger(__name__)

NET_WORTH_TOOL = "fetch_net_worth"
CREDIT_REPORT_TOOL = "fetch_credit_report"

ASSET_PREFIX = "ASSET_TYPE_"
LIABILITY_PREFIX = "LIABILITY_TYPE"

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def _describe_errors(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
        for err in exc.errors()
    ]


def parse_payload(tool_name: str, raw: Any, model: Type[PayloadT]) -> PayloadT:
    """Validate a decoded tool document against model.

    Raises:
        DashboardDataError: naming every missing or malformed field.
    """
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise DashboardDataError(tool_name, _describe_errors(e)) from e


def asset_label(attribute: str) -> str:
    """ASSET_TYPE_MUTUAL_FUND -> MUTUAL FUND (first underscore only)."""
    return attribute.removeprefix(ASSET_PREFIX).replace("_", " ", 1)


def build_snapshot(net_worth: NetWorthPayload, credit: CreditReportPayload) -> DashboardSnapshot:
    response = net_worth.net_worth_response
    assets = [
        AssetEntry(type=asset_label(item.net_worth_attribute), value=item.value.units)
        for item in response.asset_values
        if not item.net_worth_attribute.startswith(LIABILITY_PREFIX)
    ]
    return DashboardSnapshot(
        net_worth=response.total_net_worth_value.units,
        assets=assets,
        credit_score=credit.credit_reports[0].credit_report_data.score.bureau_score,
    )


class DashboardService:
    """Fetches net worth and credit report and flattens them for the dashboard."""

    def __init__(self, relay: ToolRelayClient) -> None:
        self._relay = relay

    async def get_snapshot(self, session_id: str) -> DashboardSnapshot:
        logger.info("Fetching dashboard data for session: %s", session_id)
        net_worth_body, credit_body = await self._relay.call_tools(
            [ToolInvocation(name=NET_WORTH_TOOL), ToolInvocation(name=CREDIT_REPORT_TOOL)],
            session_id=session_id,
        )

        net_worth = parse_payload(
            NET_WORTH_TOOL,
            unwrap_tool_result(NET_WORTH_TOOL, net_worth_body),
            NetWorthPayload,
        )
        credit = parse_payload(
            CREDIT_REPORT_TOOL,
            unwrap_tool_result(CREDIT_REPORT_TOOL, credit_body),
            CreditReportPayload,
        )
        return build_snapshot(net_worth, credit)
