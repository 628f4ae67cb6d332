from concurrent.futures import ThreadPoolExecutor
import pytest
from pydantic import ValidationError as PydanticValidationError
from geetha_tex import storage
from geetha_tex.domain import DEFAULT_BATCH_COLOR, BatchStatus, BatchType, BatchTypeInput, Settings, Theme
from geetha_tex.state import AppStore, NotFoundError, SetupRequired, ValidationError
from geetha_tex.storage import InMemoryStore


# ===== BATCHES =====

def test_add_batch_forces_in_progress_and_prepends(store, kv, make_batch):
    first = store.add_batch(make_batch(batch_number="one"))
    second = store.add_batch(make_batch(batch_number="two"))

    assert first.status == BatchStatus.IN_PROGRESS
    assert first.batch_number == "ONE"
    assert first.id != second.id
    assert [b.id for b in store.batches] == [second.id, first.id]
    assert [b["id"] for b in kv.get(storage.BATCHES)] == [second.id, first.id]
    assert store.notification == "New batch added successfully!"


def test_add_batch_allows_duplicate_numbers(store, make_batch):
    store.add_batch(make_batch())
    store.add_batch(make_batch())
    assert len(store.batches) == 2


def test_add_batch_rejects_machine_outside_configured_range(store, make_batch):
    with pytest.raises(ValidationError) as exc:
        store.add_batch(make_batch(machine_number=4))
    assert exc.value.field == "machineNumber"
    assert store.batches == []


def test_add_batch_rejects_meter_that_cannot_be_derived(store, make_batch):
    with pytest.raises(PydanticValidationError):
        make_batch(meter_value=float("inf"))
    with pytest.raises(PydanticValidationError):
        make_batch(meter_value=float("nan"))
    assert store.batches == []


def test_add_batch_takes_color_from_matching_batch_type(store, make_batch):
    store.add_batch_type(BatchTypeInput(batch_number="ACR001", color="#16a34a"))

    matched = store.add_batch(make_batch(batch_number="acr001"))
    unmatched = store.add_batch(make_batch(batch_number="zzz"))
    chosen = store.add_batch(make_batch(batch_number="acr001", color="#000000"))

    assert matched.color == "#16a34a"
    assert unmatched.color == DEFAULT_BATCH_COLOR
    assert chosen.color == "#000000"


def test_concurrent_adds_are_all_persisted(store, kv, make_batch):
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: store.add_batch(make_batch(batch_number=f"b{i}")), range(50)))

    assert len(store.batches) == 50
    assert len(kv.get(storage.BATCHES)) == 50
    assert len({b.id for b in store.batches}) == 50


def test_update_batch_keeps_id_and_status(store, make_batch):
    added = store.add_batch(make_batch())
    store.batches[0] = added.model_copy(update={"status": BatchStatus.DELAYED})

    changed = added.model_copy(update={"meter_value": 800.0, "batch_number": "new1",
                                       "status": BatchStatus.COMPLETED})
    updated = store.update_batch(changed)

    assert updated.id == added.id
    assert updated.status == BatchStatus.DELAYED
    assert updated.batch_number == "NEW1"
    assert store.batches[0].meter_value == 800.0
    assert store.notification == "Batch NEW1 updated!"


def test_update_batch_rejects_taken_batch_number(store, make_batch):
    store.add_batch(make_batch(batch_number="AAA"))
    other = store.add_batch(make_batch(batch_number="BBB"))

    with pytest.raises(ValidationError) as exc:
        store.update_batch(other.model_copy(update={"batch_number": "aaa"}))
    assert exc.value.field == "batchNumber"
    assert store.get_batch(other.id).batch_number == "BBB"


def test_update_batch_may_keep_a_shared_number(store, make_batch):
    store.add_batch(make_batch(batch_number="ACR001"))
    twin = store.add_batch(make_batch(batch_number="ACR001"))
    updated = store.update_batch(twin.model_copy(update={"meter_value": 10.0}))
    assert updated.meter_value == 10.0


def test_update_missing_batch_raises(store, make_batch):
    added = store.add_batch(make_batch())
    with pytest.raises(NotFoundError):
        store.update_batch(added.model_copy(update={"id": "nope"}))
    assert [b.id for b in store.batches] == [added.id]


def test_delete_batch_removes_only_that_id(store, kv, make_batch):
    a = store.add_batch(make_batch())
    b = store.add_batch(make_batch())
    c = store.add_batch(make_batch())

    store.delete_batch(b.id)

    assert [x.id for x in store.batches] == [c.id, a.id]
    assert [x["id"] for x in kv.get(storage.BATCHES)] == [c.id, a.id]
    assert store.notification == "Batch deleted successfully!"


def test_delete_missing_batch_raises_and_leaves_list(store, make_batch):
    a = store.add_batch(make_batch())
    with pytest.raises(NotFoundError):
        store.delete_batch("missing")
    assert [x.id for x in store.batches] == [a.id]


def test_calculated_batches_are_derived_and_sorted(store, make_batch):
    store.add_batch(make_batch(start_date="2023-10-01"))
    store.add_batch(make_batch(start_date="2023-09-01"))
    calculated = store.calculated_batches()
    assert [str(b.start_date) for b in calculated] == ["2023-10-01", "2023-09-01"]
    assert calculated[0].ftotal == 313


def test_machine_buckets_need_settings(empty_store):
    with pytest.raises(SetupRequired):
        empty_store.machine_buckets()


def test_machine_buckets_follow_machine_count(store, make_batch):
    store.add_batch(make_batch(machine_number=1))
    store.add_batch(make_batch(machine_number=1))
    store.add_batch(make_batch(machine_number=2))
    assert [len(b.batches) for b in store.machine_buckets()] == [2, 1, 0]


# ===== BATCH TYPES =====

def test_add_batch_type_normalises_and_lists(store):
    bt = store.add_batch_type(BatchTypeInput(batch_number=" summer-lite ", color="#eab308"))
    assert bt.batch_number == "SUMMER-LITE"
    assert store.batch_types == [bt]
    assert store.notification == "Batch type added successfully!"


def test_duplicate_batch_type_is_rejected_case_insensitively(store):
    store.add_batch_type(BatchTypeInput(batch_number="ACR001"))
    with pytest.raises(ValidationError) as exc:
        store.add_batch_type(BatchTypeInput(batch_number="acr001"))
    assert exc.value.message == "Batch number must be unique."
    assert len(store.batch_types) == 1

    store.add_batch_type(BatchTypeInput(batch_number="ACR002"))
    assert [bt.batch_number for bt in store.batch_types] == ["ACR001", "ACR002"]


def test_update_batch_type_is_silent(clock):
    kv = InMemoryStore({storage.BATCH_TYPES: [{"id": "1", "batchNumber": "ACR001", "color": "#000000"}]})
    s = AppStore(kv, clock=clock)

    updated = s.update_batch_type(BatchType(id="1", batch_number="ACR001", color="#ffffff"))

    assert updated.color == "#ffffff"
    assert kv.get(storage.BATCH_TYPES)[0]["color"] == "#ffffff"
    assert s.notification is None

    s.confirm_batch_type_color("1")
    assert s.notification == "ACR001 color updated."


def test_delete_batch_type_leaves_batches_alone(store, make_batch):
    bt = store.add_batch_type(BatchTypeInput(batch_number="ACR001"))
    store.add_batch(make_batch(batch_number="ACR001"))
    store.delete_batch_type(bt.id)
    assert store.batch_types == []
    assert len(store.batches) == 1
    with pytest.raises(NotFoundError):
        store.delete_batch_type(bt.id)


# ===== NOTIFICATION =====

def test_notification_clears_after_window(store, clock):
    store.notify("hello")
    clock.advance(2.9)
    assert store.notification == "hello"
    clock.advance(0.2)
    assert store.notification is None


def test_newer_notification_restarts_window(store, clock):
    store.notify("first")
    clock.advance(2)
    store.notify("second")
    clock.advance(2)
    assert store.notification == "second"
    clock.advance(1)
    assert store.notification is None


# ===== SETTINGS, SETUP, DEMO DATA =====

def test_new_store_is_in_setup_mode(empty_store):
    assert empty_store.settings is None
    assert empty_store.batches == []
    assert empty_store.theme == Theme.LIGHT


def test_setup_seeds_demo_data_once(empty_store, kv, clock):
    empty_store.complete_setup(Settings(company_name="Geetha Tex", number_of_machines=3))
    assert len(empty_store.batches) == 5
    assert len(empty_store.batch_types) == 6
    assert kv.get(storage.DEMO_SEEDED) is True

    for b in list(empty_store.batches):
        empty_store.delete_batch(b.id)
    assert empty_store.seed_demo_data() is False
    assert empty_store.batches == []

    reloaded = AppStore(kv, clock=clock)
    assert reloaded.batches == []
    assert reloaded.seed_demo_data() is False


def test_demo_batches_fit_machine_count(empty_store):
    empty_store.complete_setup(Settings(company_name="Geetha Tex", number_of_machines=2))
    assert len(empty_store.batches) == 4
    assert all(b.machine_number <= 2 for b in empty_store.batches)


def test_setup_without_demo(empty_store):
    empty_store.complete_setup(Settings(company_name="Mill", number_of_machines=1), seed_demo=False)
    assert empty_store.batches == []
    assert empty_store.demo_seeded is False


def test_set_settings_none_returns_to_setup(store, kv):
    store.set_settings(None)
    assert store.settings is None
    assert kv.get(storage.SETTINGS) is None


def test_update_settings_persists_and_notifies(store, kv):
    store.update_settings(Settings(company_name="New Name", number_of_machines=5))
    assert kv.get(storage.SETTINGS) == {"companyName": "New Name", "numberOfMachines": 5}
    assert store.notification == "Company settings updated successfully!"


def test_reset_clears_everything_and_allows_new_seed(empty_store, kv):
    empty_store.complete_setup(Settings(company_name="Geetha Tex", number_of_machines=3))
    empty_store.reset()

    assert empty_store.settings is None
    assert empty_store.batches == []
    assert empty_store.batch_types == []
    assert kv.get(storage.DEMO_SEEDED) is False

    empty_store.complete_setup(Settings(company_name="Geetha Tex", number_of_machines=3))
    assert len(empty_store.batches) == 5


def test_toggle_theme_persists(store, kv):
    assert store.toggle_theme() == Theme.DARK
    assert kv.get(storage.THEME) == "dark"
    assert store.toggle_theme() == Theme.LIGHT
    assert kv.get(storage.THEME) == "light"


# ===== LOADING & CHANGE BROADCAST =====

def test_state_survives_restart(store, kv, clock, make_batch):
    added = store.add_batch(make_batch())
    store.toggle_theme()

    reloaded = AppStore(kv, clock=clock)
    assert reloaded.settings == store.settings
    assert reloaded.batches == [added]
    assert reloaded.theme == Theme.DARK


def test_shape_drift_is_defaulted(clock):
    kv = InMemoryStore({
        storage.SETTINGS: {"companyName": "Mill", "numberOfMachines": 2},
        storage.BATCHES: [
            {"id": "1", "batchNumber": "A", "machineNumber": 1, "startDate": "2023-10-01",
             "endDate": "2023-10-02", "meterValue": 10},
            {"id": "2", "batchNumber": "B"},
        ],
        storage.BATCH_TYPES: "garbage",
        storage.THEME: "purple",
    })
    s = AppStore(kv, clock=clock)

    assert [b.id for b in s.batches] == ["1"]
    assert s.batches[0].color == "#f59e0b"
    assert s.batches[0].status == BatchStatus.IN_PROGRESS
    assert s.batch_types == []
    assert s.theme == Theme.LIGHT


def test_malformed_settings_mean_setup_mode(clock):
    s = AppStore(InMemoryStore({storage.SETTINGS: {"companyName": "Mill", "numberOfMachines": 0}}), clock=clock)
    assert s.settings is None


def test_subscribers_hear_changes(store, make_batch):
    topics = []
    unsubscribe = store.subscribe(topics.append)

    store.add_batch(make_batch())
    store.toggle_theme()
    unsubscribe()
    store.toggle_theme()

    assert topics == ["batches", "notification", "theme"]


def test_failing_subscriber_does_not_break_mutation(store, make_batch):
    def boom(topic):
        raise RuntimeError(topic)

    store.subscribe(boom)
    store.add_batch(make_batch())
    assert len(store.batches) == 1


# ===== BACKUP =====

def test_backup_restore_round_trip(store, kv, clock, make_batch):
    store.add_batch(make_batch())
    store.add_batch(make_batch(batch_number="wfp001", machine_number=2, meter_value=2100.2))
    document = store.backup()

    other = AppStore(InMemoryStore(), clock=clock)
    other.restore(document)

    assert other.settings == store.settings
    assert other.batches == store.batches
    assert other.notification == "Data restored from backup!"


def test_restore_rejects_bad_document(store, make_batch):
    store.add_batch(make_batch())
    with pytest.raises(ValidationError):
        store.restore({"settings": {"companyName": "x"}, "batches": []})
    assert len(store.batches) == 1


def test_backup_needs_settings(empty_store):
    with pytest.raises(SetupRequired):
        empty_store.backup()


def test_summary_task_is_per_month(store):
    assert store.summary_task(2023, 10) is store.summary_task(2023, 10)
    assert store.summary_task(2023, 10) is not store.summary_task(2023, 11)
