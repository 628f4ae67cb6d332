"""Demo batches and batch types offered on first setup.

Run directly to seed a database that already has settings:
    python -m geetha_tex.seed
"""

from geetha_tex.domain import Batch, BatchType

# ===== DEMO BATCHES (October 2023 sample run) =====
DEMO_BATCHES = [
    # (id, name, batch number, machine, start, end, meter, color)
    ("1", "Autumn Collection Run 1", "ACR001", 1, "2023-10-01", "2023-10-05", 1250.5, "#16a34a"),
    ("2", "Winter Fabric Prep", "WFP001", 2, "2023-10-03", "2023-10-08", 2100.2, "#16a34a"),
    ("3", "Spring Pattern Test", "SPT001", 1, "2023-10-10", "2023-10-15", 950.0, "#f59e0b"),
    ("4", "Holiday Special Edition", "HSE001", 3, "2023-10-12", "2023-10-20", 3500.8, "#f59e0b"),
    ("5", "Denim Wash Experiment", "DWE001", 2, "2023-10-18", "2023-10-25", 2200.7, "#dc2626"),
]

# ===== DEMO BATCH TYPES =====
DEMO_BATCH_TYPES = [
    ("1", "ACR001", "#16a34a"),
    ("2", "WFP001", "#06b6d4"),
    ("3", "SPT001", "#f59e0b"),
    ("4", "HSE001", "#ef4444"),
    ("5", "DWE001", "#3b82f6"),
    ("6", "SUMMER-LITE", "#eab308"),
]


def demo_batches(number_of_machines: int):
    """Demo batches that fit on the configured machines; status always In Progress."""
    return [
        Batch(
            id=id_, name=name, batch_number=number, machine_number=machine,
            start_date=start, end_date=end, meter_value=meter, color=color,
        )
        for id_, name, number, machine, start, end, meter, color in DEMO_BATCHES
        if machine <= number_of_machines
    ]


def demo_batch_types():
    return [BatchType(id=id_, batch_number=number, color=color) for id_, number, color in DEMO_BATCH_TYPES]


def main():
    from geetha_tex.database import SessionLocal, init_db
    from geetha_tex.state import AppStore
    from geetha_tex.storage import SqlKeyValueStore

    init_db()
    store = AppStore(SqlKeyValueStore(SessionLocal))
    if store.settings is None:
        print("No settings yet; complete setup first (POST /api/setup)")
        return
    if store.seed_demo_data():
        print(f"Seeded {len(store.batches)} batches and {len(store.batch_types)} batch types")
    else:
        print("Demo data was already seeded once; nothing to do")


if __name__ == "__main__":
    main()
