from functools import lru_cache
from typing import Any, Dict, List, Tuple

# (name, description) of every tool the Fi tool service exposes. None of them
# take arguments; the service resolves the user from the session header.
FI_TOOLS: Tuple[Tuple[str, str], ...] = (
    (
        "fetch_net_worth",
        "Calculate comprehensive net worth using ONLY actual data from accounts "
        "users connected on Fi Money.",
    ),
    (
        "fetch_credit_report",
        "Retrieve comprehensive credit report including scores, active loans, "
        "credit card utilization, payment history, and date of birth.",
    ),
    (
        "fetch_epf_details",
        "Retrieve detailed EPF (Employee Provident Fund) account information.",
    ),
    (
        "fetch_mf_transactions",
        "Retrieve detailed transaction history for mutual funds.",
    ),
    (
        "fetch_bank_transactions",
        "Retrieve detailed bank transactions for each bank account.",
    ),
    (
        "fetch_stock_transactions",
        "Retrieve detailed indian stock transactions for all connected indian "
        "stock accounts.",
    ),
)


@lru_cache(maxsize=1)
def get_tool_schemas() -> List[Dict[str, Any]]:
    """Return OpenAI tool schemas for the Fi tools (cached).

    Returns:
        List[Dict[str, Any]]: Tool schemas in OpenAI function format.
    """
    return [
        {
            "type": "function",
            "function": {
                "name": name,
                "description": description,
                "parameters": {"type": "object", "properties": {}},
            },
        }
        for name, description in FI_TOOLS
    ]
