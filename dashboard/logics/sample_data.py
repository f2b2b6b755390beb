"""
Fixed demo dataset served when the member feed cannot be fetched and no
previously loaded data exists. Records carry data_source="sample" so the UI
can show a clearly-demo state.
"""

from typing import List

from dashboard.logics.models import MemberRecord
from dashboard.logics.reconciler import reconcile
from dashboard.logics.row_parser import parse_member_rows

SAMPLE_DATA_SOURCE = "sample"

SAMPLE_MEMBER_ROWS = [
    [
        "Unique ID", "Member ID", "First Name", "Last Name", "Email", "Membership Name",
        "End Date", "Location", "Sessions Left", "Item ID", "Order Date", "Sold By",
        "Membership ID", "Frozen", "Paid", "Status",
    ],
    [
        "4406-Studio 4 Class Package-19981880-2022-02-27T18:30:00.000Z", "4406",
        "Shereena", "Master", "shereena.master@gmail.com", "Studio 4 Class Package",
        "11/02/2023 00:00:00", "Kwality House, Kemps Corner", "0", "19981880",
        "2022-02-28 00:00:00", "-", "25768", "-", "4779", "Expired",
    ],
    [
        "77316-Studio Annual Unlimited---2026-01-01T00:12:39.000Z", "77316",
        "Ayesha", "Mansukhani", "ayesha.mansukhani@gmail.com", "Studio Annual Unlimited",
        "01/01/2026 05:42:39", "Kwality House, Kemps Corner", "0", "-",
        "2026-01-01 05:42:39", "-", "-", "FALSE", "-", "Active",
    ],
    [
        "110567-Studio 4 Class Package-39727200-2025-04-12T13:27:43.839Z", "110567",
        "Swathi", "Mohan", "swathimohan05@gmail.com", "Studio 4 Class Package",
        "25/04/2025 19:30:00", "Supreme HQ, Bandra", "3", "39727200",
        "2025-04-12 18:57:43", "imran@physique57mumbai.com", "25768", "-", "6313", "Expired",
    ],
]


def get_sample_records() -> List[MemberRecord]:
    """Build the demo records through the normal parse/reconcile path."""
    return reconcile(parse_member_rows(SAMPLE_MEMBER_ROWS), {}, data_source=SAMPLE_DATA_SOURCE)
