from prometheus_client import Counter

DONATIONS = Counter(
    "wishingwell_donations_total",
    "Donation attempts by final outcome",
    ["outcome"],
)
DONATED_MINOR_UNITS = Counter(
    "wishingwell_donated_minor_units_total",
    "Sum of recorded donation amounts in minor currency units",
)
RECONCILIATION_TASKS = Counter(
    "wishingwell_reconciliation_tasks_total",
    "Reconciliation tasks recorded",
    ["kind"],
)
