from signal_monitor.memory.user_preferences import FeedbackStore, UserPreferencesStore
from signal_monitor.models.schemas import FeedbackType, OutputFormat


def test_preferences_default_when_empty(tmp_path):
    prefs = UserPreferencesStore(tmp_path).get()
    assert prefs.focus_companies is None
    assert prefs.min_confidence is None


def test_preferences_update_merges_and_persists(tmp_path):
    store = UserPreferencesStore(tmp_path)
    store.set_focus_companies(["Globex"])
    store.update(output_format=OutputFormat.SUMMARY)

    reopened = UserPreferencesStore(tmp_path).get()

    assert reopened.focus_companies == ["Globex"]
    assert reopened.output_format == OutputFormat.SUMMARY
    assert store.store.size == 1


def test_min_confidence_is_clamped(tmp_path):
    store = UserPreferencesStore(tmp_path)
    assert store.set_min_confidence(1.4).min_confidence == 1.0
    assert store.set_min_confidence(-0.2).min_confidence == 0.0
    assert store.set_min_confidence(0.7).min_confidence == 0.7


def test_preferences_reset(tmp_path):
    store = UserPreferencesStore(tmp_path)
    store.set_focus_industries(["retail"])
    store.reset()
    assert store.get().focus_industries is None


def test_feedback_log(tmp_path):
    store = FeedbackStore(tmp_path)
    store.record("evt_1", FeedbackType.RELEVANT)
    store.record("evt_1", "irrelevant", comment="wrong company")
    store.record("evt_2", FeedbackType.RELEVANT)

    assert store.size == 3
    assert [f.feedback for f in store.get_for_event("evt_1")] == [
        FeedbackType.RELEVANT,
        FeedbackType.IRRELEVANT,
    ]
    assert store.summary() == {"relevant": 2, "irrelevant": 1, "partially_relevant": 0}
