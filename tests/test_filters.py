"""Filter pipeline shared by the part, notification and history tables."""

from datetime import date, datetime, timezone

from modules.parts.aging import BUCKET_GT30, BUCKET_GT90, classify
from modules.parts.filters import ALL, PartFilter, distinct_options
from modules.parts.models import PartRecord

NOW = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def _part(part_id, number, type_description, created_on):
    return PartRecord.from_api({
        "part_id": part_id,
        "part_number": number,
        "quantity": 1,
        "type_description": type_description,
        "created_on": created_on,
        "approved_by_user": "Sam",
    })


PARTS = [
    _part(1, "OC-100", "Ocell", "2024-06-28 09:00:00"),
    _part(2, "PN-200", "Panel", "2024-05-01 09:00:00"),
    _part(3, "oc-300", "ocell", "2024-01-01 09:00:00"),
]


def test_defaults_keep_everything():
    flt = PartFilter.from_args({})
    assert not flt.is_active
    assert flt.apply(PARTS) == PARTS


def test_type_is_case_insensitive_and_search_is_substring():
    flt = PartFilter.from_args({"type": "OCELL", "q": "OC-"})
    assert [p.id for p in flt.apply(PARTS)] == ["1", "3"]


def test_age_bucket_filter():
    rows = [(p, classify(p.created_on, NOW)) for p in PARTS]
    flt = PartFilter.from_args({"age": BUCKET_GT90})
    shown = flt.apply(rows, part_number=lambda r: r[0].part_number,
                      type_of=lambda r: r[0].type_description, bucket_of=lambda r: r[1].bucket)
    assert [r[0].id for r in shown] == ["3"]

    flt = PartFilter.from_args({"age": BUCKET_GT30})
    shown = flt.apply(rows, part_number=lambda r: r[0].part_number,
                      type_of=lambda r: r[0].type_description, bucket_of=lambda r: r[1].bucket)
    assert [r[0].id for r in shown] == ["2"]


def test_unknown_age_falls_back_to_all():
    assert PartFilter.from_args({"age": "ok"}).age_bucket == "all"
    assert PartFilter.from_args({"age": "gt1000"}).age_bucket == "all"


def test_date_window_is_inclusive():
    flt = PartFilter.from_args({"from": "2024-05-01", "to": "2024-06-28"})
    shown = flt.apply(PARTS, moment_of=lambda p: p.created_at)
    assert [p.id for p in shown] == ["1", "2"]


def test_single_bound_selects_one_day():
    flt = PartFilter.from_args({"to": "2024-05-01"})
    assert flt.from_date is None and flt.to_date == date(2024, 5, 1)
    shown = flt.apply(PARTS, moment_of=lambda p: p.created_at)
    assert [p.id for p in shown] == ["2"]


def test_bad_dates_are_ignored():
    flt = PartFilter.from_args({"from": "31/12/2024"})
    assert flt.date_window() is None


def test_distinct_options():
    assert distinct_options(["Ocell", None, "Panel", "Ocell", ""]) == [ALL, "Ocell", "Panel"]
