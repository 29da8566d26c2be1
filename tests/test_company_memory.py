from conftest import make_signal_event
from signal_monitor.memory.company_memory import CompanyMemory
from signal_monitor.models.schemas import BuyingStage, SignalCategory


def test_first_signal_creates_company(tmp_path):
    memory = CompanyMemory(tmp_path)

    company = memory.record_signal(make_signal_event("evt_1", company="Globex"))

    assert company.company_name == "Globex"
    assert company.signal_count == 1
    assert company.categories == {"tms_logistics": 1}
    assert company.latest_buying_stage == BuyingStage.EVALUATION
    assert company.signal_ids == ["evt_1"]
    assert memory.size == 1


def test_signals_accumulate_case_insensitively(tmp_path):
    memory = CompanyMemory(tmp_path)
    memory.record_signal(make_signal_event("evt_1", company="Globex"))
    memory.record_signal(
        make_signal_event("evt_2", company="GLOBEX", category=SignalCategory.ERP_MIGRATION)
    )

    company = memory.get_company("globex")

    assert memory.size == 1
    assert company.company_name == "Globex"
    assert company.signal_count == 2
    assert company.categories == {"tms_logistics": 1, "erp_migration": 1}
    assert company.signal_ids == ["evt_1", "evt_2"]


def test_buying_stage_never_regresses(tmp_path):
    memory = CompanyMemory(tmp_path)
    memory.record_signal(make_signal_event("evt_1", stage=BuyingStage.EVALUATION))
    memory.record_signal(make_signal_event("evt_2", stage=BuyingStage.AWARENESS))

    assert memory.get_company("Globex").latest_buying_stage == BuyingStage.EVALUATION

    memory.record_signal(make_signal_event("evt_3", stage=BuyingStage.IMPLEMENTATION))
    assert memory.get_company("Globex").latest_buying_stage == BuyingStage.IMPLEMENTATION


def test_top_companies_by_signal_count(tmp_path):
    memory = CompanyMemory(tmp_path)
    for i, name in enumerate(["A", "B", "B", "C", "C", "C"]):
        memory.record_signal(make_signal_event(f"evt_{i}", company=name))

    top = memory.get_top_companies(limit=2)

    assert [c.company_name for c in top] == ["C", "B"]
    assert sorted(c.company_name for c in memory.get_all_companies()) == ["A", "B", "C"]


def test_companies_by_stage(tmp_path):
    memory = CompanyMemory(tmp_path)
    memory.record_signal(make_signal_event("evt_1", company="A", stage=BuyingStage.RESEARCH))
    memory.record_signal(make_signal_event("evt_2", company="B", stage=BuyingStage.DECISION))

    assert [c.company_name for c in memory.get_companies_by_stage(BuyingStage.DECISION)] == ["B"]
    assert [c.company_name for c in memory.get_companies_by_stage("research")] == ["A"]


def test_notes(tmp_path):
    memory = CompanyMemory(tmp_path)
    assert memory.add_note("Nobody", "hello") is None

    memory.record_signal(make_signal_event("evt_1", company="Globex"))
    company = memory.add_note("globex", "Met at trade show")

    assert len(company.notes) == 1
    assert company.notes[0].startswith("[")
    assert company.notes[0].endswith("] Met at trade show")


def test_alias_links_signals_to_canonical_record(tmp_path):
    memory = CompanyMemory(tmp_path)
    memory.record_signal(make_signal_event("evt_1", company="Globex Corporation"))
    memory.add_alias("Globex Corporation", "Globex")

    memory.record_signal(make_signal_event("evt_2", company="globex"))

    assert memory.size == 1
    company = memory.get_company("Globex")
    assert company.company_name == "Globex Corporation"
    assert company.signal_count == 2


def test_alias_for_unknown_company_creates_stub(tmp_path):
    memory = CompanyMemory(tmp_path)
    company = memory.add_alias("Initech", "Initech LLC")

    assert company.signal_count == 0
    assert company.aliases == ["Initech LLC"]
    assert company.latest_buying_stage is None

    updated = memory.record_signal(make_signal_event("evt_1", company="Initech LLC"))
    assert updated.latest_buying_stage == BuyingStage.EVALUATION


def test_state_survives_reopen(tmp_path):
    CompanyMemory(tmp_path).record_signal(make_signal_event("evt_1"))
    assert CompanyMemory(tmp_path).get_company("Globex").signal_count == 1
