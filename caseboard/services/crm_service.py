"""CRM adapter used by the case import flow.

Only a mock adapter ships today: it derives a quote or order record from the
CRM id so imports can be exercised end to end without vendor credentials.
"""

import zlib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

SUPPORTED_SYSTEMS = {"Salesforce", "HubSpot", "Mock"}


@dataclass
class CrmRecord:
    """Normalized record returned by a CRM adapter."""
    id: str
    system: str
    entity_type: str  # "Quote" | "Order"
    title: str
    customer_name: str
    value: int
    description: str
    data: dict[str, Any] = field(default_factory=dict)


def fetch_record(crm_id: str, system: str = "Salesforce") -> CrmRecord:
    """
    Fetch a record from the named CRM.

    Ids starting with 'Q' are quotes, everything else is an order.
    """
    if system not in SUPPORTED_SYSTEMS:
        system = "Mock"

    is_quote = crm_id.upper().startswith("Q")
    value = 5000 + zlib.crc32(crm_id.encode("utf-8")) % 50000

    if is_quote:
        title = f"Quote for {crm_id} - Server Hardware"
    else:
        title = f"Order {crm_id} - Network Upgrade"

    return CrmRecord(
        id=crm_id,
        system=system,
        entity_type="Quote" if is_quote else "Order",
        title=title,
        customer_name="Acme Corp",
        value=value,
        description=(
            f"Imported from {system}.\n\n"
            "Line Items:\n- 10x Server Racks\n- 50x Cat6 Cables\n- 2x Core Switches"
        ),
        data={
            "source": "MockAdapter",
            "importedAt": datetime.now(timezone.utc).isoformat(),
            "originalStatus": "Closed Won",
        },
    )
