"""Command line entry point."""

import json

import pytest

from ganzhi.run import main


def _run(capsys, argv):
    main(argv)
    return json.loads(capsys.readouterr().out)


class TestLunarCommand:
    def test_solar_to_lunar(self, capsys):
        result = _run(capsys, ["lunar", "--date", "1900-01-31"])
        assert result["lunar"]["year"] == 1900
        assert result["lunar"]["month"] == 1
        assert result["lunar"]["day"] == 1

    def test_lunar_to_solar_leap(self, capsys):
        result = _run(capsys, ["lunar", "--lunar-date", "2023-02-01", "--leap"])
        assert result["solar"] == "2023-03-22"
        assert result["lunar"]["month_cn"] == "闰二月"

    def test_out_of_range_exits(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["lunar", "--date", "1800-01-01"])
        assert exc.value.code == 2
        assert "error:" in capsys.readouterr().err

    def test_needs_a_date(self):
        with pytest.raises(SystemExit):
            main(["lunar"])


class TestChartCommand:
    ARGS = [
        "--solar-term-method", "mean",
        "chart", "--name", "张三", "--birth-date", "1990-06-15", "--birth-time", "12:00",
        "--gender", "male", "--city", "北京",
    ]

    def test_chart(self, capsys):
        result = _run(capsys, self.ARGS)
        assert result["pillars"]["day"]["ganzhi"] == "辛亥"
        assert result["digest"].startswith("命主：张三（乾造）")
        assert "narrative_request" not in result

    def test_section(self, capsys):
        result = _run(capsys, self.ARGS + ["--section", "summary"])
        assert result["narrative_request"]["title"] == "命局总评"

    def test_output_file(self, capsys, tmp_path):
        target = tmp_path / "out" / "chart.json"
        printed = _run(capsys, self.ARGS + ["--output", str(target)])
        saved = json.loads(target.read_text(encoding="utf-8"))
        assert saved["pillars"] == printed["pillars"]

    def test_bad_time_exits(self):
        args = list(self.ARGS)
        args[args.index("12:00")] = "25:61"
        with pytest.raises(SystemExit) as exc:
            main(args)
        assert exc.value.code == 2


class TestAlmanacCommand:
    def test_almanac(self, capsys):
        result = _run(capsys, ["--solar-term-method", "mean", "almanac", "--date", "2000-01-01"])
        assert result["pillars"] == {"year": "己卯", "month": "丁丑", "day": "戊午"}
        assert len(result["hours"]) == 12

    def test_bad_date_exits(self):
        with pytest.raises(SystemExit):
            main(["almanac", "--date", "2000-02-30"])
