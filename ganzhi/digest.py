"""
Payloads handed to the collaborators outside the core.

- format_chart_digest(): the fixed-order text summary of a chart that the
  narrative generator is prompted with
- build_narrative_request(): digest plus section title and prompt for one
  report section
- HistoryRecord: the serializable shape the history store keeps

The generated prose itself is opaque here; no storage happens here either.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ganzhi.chart import Chart
from ganzhi.errors import ValidationError
from ganzhi.tables import ELEMENT_CHINESE, Element

# section key -> title
REPORT_SECTIONS = {
    "summary": "命局总评",
    "career": "事业运势",
    "wealth": "财富运势",
    "relationship": "婚姻情感",
    "health": "健康养生",
    "advice": "人生建议",
    "children": "子女运势",
    "education": "学业运势",
    "social": "人际关系",
    "yearly": "流年运势",
}

# Element order of the 五行分布 line
DIGEST_ELEMENT_ORDER = (Element.WOOD, Element.FIRE, Element.EARTH, Element.METAL, Element.WATER)

PILLAR_LABELS = {"year": "年柱", "month": "月柱", "day": "日柱", "hour": "时柱"}


def _elements(elements) -> str:
    return "、".join(ELEMENT_CHINESE[e] for e in elements)


def format_chart_digest(chart: Chart) -> str:
    """
    Deterministic text digest of a chart, one field per line:

        命主：张三（乾造）
        日元：甲木（阳）
        格局：身强（强度26分）
        喜用神：火、土
        忌神：木、水
        五行分布：木1 火3 土0 金2 水2
        年柱：庚午（七杀）
        月柱：壬午（偏印）
        日柱：甲子
        时柱：庚午（七杀）

    The day pillar carries no ten god: its stem is the Day Master itself.
    """
    dm = chart.day_master
    strength = chart.strength
    counts = " ".join(
        f"{ELEMENT_CHINESE[e]}{chart.element_counts.get(e, 0)}" for e in DIGEST_ELEMENT_ORDER
    )

    lines = [
        f"命主：{chart.name}（{chart.gender.chinese}）",
        f"日元：{dm.chinese}{dm.element.chinese}（{dm.polarity.chinese}）",
        f"格局：{strength.verdict.value}（强度{strength.score}分）",
        f"喜用神：{_elements(strength.favorable)}",
        f"忌神：{_elements(strength.unfavorable)}",
        f"五行分布：{counts}",
    ]
    for pillar in chart.pillars:
        label = PILLAR_LABELS[pillar.position]
        if pillar.position == "day":
            lines.append(f"{label}：{pillar.ganzhi}")
        else:
            lines.append(f"{label}：{pillar.ganzhi}（{pillar.ten_god.value}）")
    return "\n".join(lines)


@dataclass(frozen=True)
class NarrativeRequest:
    section: str
    title: str
    digest: str

    @property
    def prompt(self) -> str:
        return f"请根据以下八字命盘给出{self.title}分析：\n\n{self.digest}"

    def to_dict(self) -> dict:
        return {
            "section": self.section,
            "title": self.title,
            "digest": self.digest,
            "prompt": self.prompt,
        }


def build_narrative_request(chart: Chart, section: str) -> NarrativeRequest:
    """Request for one report section; unknown sections raise ValidationError."""
    if section not in REPORT_SECTIONS:
        raise ValidationError(
            f"Unknown report section {section!r}; expected one of {', '.join(REPORT_SECTIONS)}"
        )
    return NarrativeRequest(section, REPORT_SECTIONS[section], format_chart_digest(chart))


# ============================================================
# HISTORY RECORD
# ============================================================

@dataclass
class HistoryRecord:
    id: str
    timestamp: datetime
    name: str
    gender: str
    birth_date: str
    chart: dict
    ai_content: dict = field(default_factory=dict)  # section key -> generated text

    @classmethod
    def from_chart(cls, chart: Chart, ai_content: Optional[dict] = None) -> "HistoryRecord":
        return cls(
            id=chart.id,
            timestamp=chart.created_at,
            name=chart.name,
            gender=chart.gender.value,
            birth_date=chart.birth.isoformat(timespec="minutes"),
            chart=chart.to_dict(),
            ai_content=dict(ai_content or {}),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(timespec="seconds"),
            "name": self.name,
            "gender": self.gender,
            "birth_date": self.birth_date,
            "chart": self.chart,
            "ai_content": self.ai_content,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryRecord":
        try:
            return cls(
                id=data["id"],
                timestamp=datetime.fromisoformat(data["timestamp"]),
                name=data["name"],
                gender=data["gender"],
                birth_date=data["birth_date"],
                chart=data["chart"],
                ai_content=dict(data.get("ai_content") or {}),
            )
        except KeyError as e:
            raise ValidationError(f"History record is missing field {e.args[0]!r}") from None
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Malformed history record: {e}") from None


def sort_by_recency(records: list[HistoryRecord]) -> list[HistoryRecord]:
    """Newest first."""
    return sorted(records, key=lambda r: r.timestamp, reverse=True)
