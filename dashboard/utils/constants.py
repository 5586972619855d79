from __future__ import annotations

TICKET_STATUS_OPEN = "open"
TICKET_STATUS_WORKING = "working"
TICKET_STATUS_CLOSED = "closed"
TICKET_STATUS_SATISFIED = "satisfied"

TICKET_STATUSES = (
    TICKET_STATUS_OPEN,
    TICKET_STATUS_WORKING,
    TICKET_STATUS_CLOSED,
    TICKET_STATUS_SATISFIED,
)

PRIORITY_COLORS = ("yellow", "orange", "red", "green")

DELAY_BUCKETS = ("<24h", "24-72h", ">72h")

FILTER_ALL = "all"

PLACEHOLDER = "—"

EMPTY_TIMELINE_MESSAGE = "No timeline activities available"

STATUS_LABELS = {
    FILTER_ALL: "Total Tickets",
    TICKET_STATUS_OPEN: "Open",
    TICKET_STATUS_WORKING: "In Progress",
    TICKET_STATUS_CLOSED: "Closed",
    TICKET_STATUS_SATISFIED: "Satisfied",
}

COLOR_LABELS = {
    "yellow": "Yellow",
    "orange": "Orange",
    "red": "Red",
    "green": "Green",
}

TYPE_LABELS = {
    "complaint": "Complaint",
    "inquiry": "Inquiry",
    "delivery_issue": "Delivery Issue",
    "billing": "Billing",
    "other": "Other",
    "status_check": "Status Check",
}
