import pytest

from conftest import make_report, sensors_with_offline
from utils.aggregator import (
    MODE_DYNAMIC,
    MODE_LEGACY,
    chart_data,
    list_codes,
    normalize_mode,
    project_period_filter,
    summarize,
    summarize_all,
    summarize_code,
)


def seed_december(db):
    make_report(db, "FMS Dec 2025", "TB CELEBES SEJATI 01", sensors_with_offline())
    make_report(db, "FMS Dec 2025", "TB ENTEBE MEGASTAR 63",
                sensors_with_offline("rpm_me_port", "rpm_me_stbd", "flowmeter_input"))
    make_report(db, "FMS Dec 2025", "TB ENTEBE MEGASTAR 67",
                sensors_with_offline("rpm_me_port", "rpm_me_stbd", "flowmeter_input"))


# ============================================================================
# Modes
# ============================================================================


class TestNormalizeMode:

    def test_default_is_dynamic(self):
        assert normalize_mode(None) == MODE_DYNAMIC
        assert normalize_mode("") == MODE_DYNAMIC

    def test_case_insensitive(self):
        assert normalize_mode(" Legacy ") == MODE_LEGACY

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            normalize_mode("weighted")


# ============================================================================
# Period summaries
# ============================================================================


class TestSummarize:

    @pytest.mark.parametrize("mode", [MODE_DYNAMIC, MODE_LEGACY])
    def test_seven_sensor_period_matches_in_both_modes(self, db, mode):
        seed_december(db)

        s = summarize_code(db, "FMS Dec 2025", mode).as_dict()

        assert s["mode"] == mode
        assert s["total_ships"] == 3
        assert s["total_devices"] == 21
        assert s["total_online"] == 15
        assert s["total_offline"] == 6
        assert s["online_percent"] == 71.43
        assert s["offline_percent"] == 28.57

    def test_empty_period(self, db):
        s = summarize_code(db, "FMS Jan 2030", MODE_DYNAMIC)
        assert s.total_ships == 0
        assert s.total_devices == 0
        assert s.online_percent == 0.0
        assert s.offline_percent == 0.0

    def test_modes_diverge_when_ships_do_not_have_seven_sensors(self, db):
        make_report(db, "FMS Jan 2026", "KM A", {"gps": True, "engine_temp": True, "fuel_level": False})

        dynamic = summarize_code(db, "FMS Jan 2026", MODE_DYNAMIC)
        legacy = summarize_code(db, "FMS Jan 2026", MODE_LEGACY)

        assert (dynamic.total_online, dynamic.total_offline) == (2, 1)
        # legacy reads the derived gps column only and assumes 7 channels
        assert (legacy.total_online, legacy.total_offline) == (1, 6)

    def test_legacy_rows_are_counted_through_columns(self, db):
        make_report(db, "FMS Nov 2025", "OLD SHIP", {},
                    device_condition=True, gps=True, rpm_me_port=True, rpm_me_stbd=True,
                    flowmeter_input=True, flowmeter_output=False, flowmeter_bunker=False)

        for mode in (MODE_DYNAMIC, MODE_LEGACY):
            s = summarize_code(db, "FMS Nov 2025", mode)
            assert (s.total_online, s.total_offline) == (5, 2)


class TestProjectPeriodFilter:

    def test_wildcard_matches_plain_and_ship_coded_reports(self, db):
        make_report(db, "FMS Dec 2025", "A", {"gps": True})
        make_report(db, "FMS KM01 Dec 2025", "B", {"gps": False})
        make_report(db, "FMS Nov 2025", "C", {"gps": True})
        make_report(db, "FMSX KM02 Dec 2025", "D", {"gps": True})
        make_report(db, "OPS KM01 Dec 2025", "E", {"gps": True})

        s = summarize(db, "FMS * Dec 2025", project_period_filter("FMS", "Dec 2025"), MODE_DYNAMIC)

        assert s.total_ships == 2
        assert (s.total_online, s.total_offline) == (1, 1)

    def test_like_metacharacters_are_literal(self, db):
        make_report(db, "F_S KM01 Dec 2025", "A", {"gps": True})
        make_report(db, "FXS KM01 Dec 2025", "B", {"gps": True})

        s = summarize(db, "F_S * Dec 2025", project_period_filter("F_S", "Dec 2025"), MODE_DYNAMIC)
        assert s.total_ships == 1


class TestCodesAndCharts:

    def test_codes_distinct_descending(self, db):
        make_report(db, "FMS Dec 2025", "A", {"gps": True})
        make_report(db, "FMS Dec 2025", "B", {"gps": True})
        make_report(db, "FMS Nov 2025", "A", {"gps": False})

        assert list_codes(db) == ["FMS Nov 2025", "FMS Dec 2025"]
        assert list_codes(db, limit=1) == ["FMS Nov 2025"]

    def test_chart_arrays_line_up(self, db):
        seed_december(db)
        make_report(db, "FMS Nov 2025", "A", {"gps": False})

        chart = chart_data(summarize_all(db, MODE_DYNAMIC))

        assert chart["labels"] == ["FMS Nov 2025", "FMS Dec 2025"]
        assert chart["onlinePercentages"] == [0.0, 71.43]
        assert chart["offlinePercentages"] == [100.0, 28.57]
        assert chart["totalOnline"] == [0, 15]
        assert chart["totalOffline"] == [1, 6]
