from baraya.models.report import EmergencyReport, EmergencyStatus
from baraya.services.report_cache import ActiveReportCache


def make_report():
    return EmergencyReport.model_validate(
        {"id": 9, "userId": "5", "latitude": -6.9, "longitude": 107.6, "pesan": "Banjir", "status": "in_progress"}
    )


def test_save_and_load(tmp_path):
    cache = ActiveReportCache(str(tmp_path / "nested" / "active.json"))
    cache.save(make_report())

    loaded = cache.load()

    assert loaded.id == 9
    assert loaded.user_id == "5"
    assert loaded.message == "Banjir"
    assert loaded.status == EmergencyStatus.IN_PROGRESS


def test_save_none_clears(tmp_path):
    cache = ActiveReportCache(str(tmp_path / "active.json"))
    cache.save(make_report())
    cache.save(None)

    assert cache.load() is None
    assert not (tmp_path / "active.json").exists()


def test_corrupt_cache_is_discarded(tmp_path):
    path = tmp_path / "active.json"
    path.write_text('{"id": "not-a-report"}', encoding="utf-8")
    cache = ActiveReportCache(str(path))

    assert cache.load() is None
    assert not path.exists()


def test_clear_missing_file_is_fine(tmp_path):
    ActiveReportCache(str(tmp_path / "missing.json")).clear()
