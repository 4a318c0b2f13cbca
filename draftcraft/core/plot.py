"""Plot structures for DraftCraft.

Each narrative structure owns its own fixed set of free-text fields. A
``PlotFormState`` keeps one variant per structure so switching structures
never mixes fields, and only the active variant is rendered into prompts.
Variants and form states are immutable; edits return new objects, which
lets the undo stack hold them without copying.
"""

from enum import Enum
from typing import ClassVar, Dict, Any, List, Mapping, Optional, Tuple, Type
from dataclasses import dataclass, field, fields, replace


class PlotStructureType(Enum):
    """Narrative-outline schema governing which plot fields are active."""
    KISHOTENKETSU = "kishotenketsu"
    THREE_ACT = "three-act"
    FOUR_ACT = "four-act"
    HEROES_JOURNEY = "heroes-journey"
    BEAT_SHEET = "beat-sheet"
    MYSTERY_SUSPENSE = "mystery-suspense"


DEFAULT_STRUCTURE = PlotStructureType.KISHOTENKETSU


@dataclass(frozen=True)
class PlotVariant:
    """Base class for the per-structure field sets."""

    STRUCTURE: ClassVar[PlotStructureType]
    LABEL: ClassVar[str]
    FIELD_LABELS: ClassVar[Dict[str, str]]

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def values(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in self.field_names()}

    def with_field(self, name: str, value: str) -> "PlotVariant":
        """Return a copy with one field replaced."""
        if name not in self.field_names():
            raise KeyError(f"{self.STRUCTURE.value} has no field '{name}'")
        return replace(self, **{name: value})

    def cleared(self) -> "PlotVariant":
        return type(self)()

    def progress(self) -> Tuple[int, int]:
        """Completed and total field counts."""
        values = self.values()
        return sum(1 for v in values.values() if v.strip()), len(values)

    def describe(self) -> str:
        """Render the structure for prompts."""
        lines = [f"{self.LABEL}:"]
        for name, label in self.FIELD_LABELS.items():
            lines.append(f"{label}: {getattr(self, name) or 'Not set'}")
        return "\n".join(lines)


@dataclass(frozen=True)
class KishotenketsuPlot(PlotVariant):
    STRUCTURE: ClassVar[PlotStructureType] = PlotStructureType.KISHOTENKETSU
    LABEL: ClassVar[str] = "Kishotenketsu"
    FIELD_LABELS: ClassVar[Dict[str, str]] = {
        "ki": "Ki - Introduction",
        "sho": "Sho - Development",
        "ten": "Ten - Twist",
        "ketsu": "Ketsu - Conclusion",
    }

    ki: str = ""
    sho: str = ""
    ten: str = ""
    ketsu: str = ""


@dataclass(frozen=True)
class ThreeActPlot(PlotVariant):
    STRUCTURE: ClassVar[PlotStructureType] = PlotStructureType.THREE_ACT
    LABEL: ClassVar[str] = "Three-act structure"
    FIELD_LABELS: ClassVar[Dict[str, str]] = {
        "act1": "Act 1 - Setup",
        "act2": "Act 2 - Confrontation",
        "act3": "Act 3 - Resolution",
    }

    act1: str = ""
    act2: str = ""
    act3: str = ""


@dataclass(frozen=True)
class FourActPlot(PlotVariant):
    STRUCTURE: ClassVar[PlotStructureType] = PlotStructureType.FOUR_ACT
    LABEL: ClassVar[str] = "Four-act structure"
    FIELD_LABELS: ClassVar[Dict[str, str]] = {
        "act1": "Act 1 - Order",
        "act2": "Act 2 - Chaos",
        "act3": "Act 3 - Order",
        "act4": "Act 4 - Chaos",
    }

    act1: str = ""
    act2: str = ""
    act3: str = ""
    act4: str = ""


@dataclass(frozen=True)
class HeroesJourneyPlot(PlotVariant):
    STRUCTURE: ClassVar[PlotStructureType] = PlotStructureType.HEROES_JOURNEY
    LABEL: ClassVar[str] = "Hero's journey"
    FIELD_LABELS: ClassVar[Dict[str, str]] = {
        "ordinary_world": "The ordinary world",
        "call_to_adventure": "Call to adventure",
        "crossing_threshold": "Crossing the threshold",
        "tests_and_allies": "Tests and allies",
        "ordeal": "The ordeal",
        "reward": "Reward",
        "road_back": "The road back",
        "resurrection": "Resurrection and return",
    }

    ordinary_world: str = ""
    call_to_adventure: str = ""
    crossing_threshold: str = ""
    tests_and_allies: str = ""
    ordeal: str = ""
    reward: str = ""
    road_back: str = ""
    resurrection: str = ""


@dataclass(frozen=True)
class BeatSheetPlot(PlotVariant):
    STRUCTURE: ClassVar[PlotStructureType] = PlotStructureType.BEAT_SHEET
    LABEL: ClassVar[str] = "Beat sheet"
    FIELD_LABELS: ClassVar[Dict[str, str]] = {
        "setup": "Setup",
        "break_into_two": "Break into two",
        "fun_and_games": "Fun and games",
        "midpoint": "Midpoint",
        "all_is_lost": "All is lost",
        "finale": "Finale",
        "final_image": "Final image",
    }

    setup: str = ""
    break_into_two: str = ""
    fun_and_games: str = ""
    midpoint: str = ""
    all_is_lost: str = ""
    finale: str = ""
    final_image: str = ""


@dataclass(frozen=True)
class MysterySuspensePlot(PlotVariant):
    STRUCTURE: ClassVar[PlotStructureType] = PlotStructureType.MYSTERY_SUSPENSE
    LABEL: ClassVar[str] = "Mystery / suspense"
    FIELD_LABELS: ClassVar[Dict[str, str]] = {
        "inciting_crime": "Inciting crime",
        "early_investigation": "Early investigation",
        "red_herrings": "Hypotheses and red herrings",
        "second_incident": "Second incident / reversal",
        "clues_converge": "Clues converge",
        "revelation": "Revelation",
        "epilogue": "Epilogue",
    }

    inciting_crime: str = ""
    early_investigation: str = ""
    red_herrings: str = ""
    second_incident: str = ""
    clues_converge: str = ""
    revelation: str = ""
    epilogue: str = ""


PLOT_VARIANTS: Dict[PlotStructureType, Type[PlotVariant]] = {
    cls.STRUCTURE: cls
    for cls in (
        KishotenketsuPlot,
        ThreeActPlot,
        FourActPlot,
        HeroesJourneyPlot,
        BeatSheetPlot,
        MysterySuspensePlot,
    )
}


def parse_structure(value: Optional[str]) -> PlotStructureType:
    """Convert a stored structure value, falling back to the default."""
    try:
        return PlotStructureType(value)
    except ValueError:
        return DEFAULT_STRUCTURE


@dataclass(frozen=True)
class PlotFormState:
    """One field-set variant per structure type."""

    variants: Mapping[PlotStructureType, PlotVariant] = field(
        default_factory=lambda: {s: cls() for s, cls in PLOT_VARIANTS.items()}
    )

    def get(self, structure: PlotStructureType) -> PlotVariant:
        return self.variants.get(structure) or PLOT_VARIANTS[structure]()

    def with_variant(self, variant: PlotVariant) -> "PlotFormState":
        variants = dict(self.variants)
        variants[variant.STRUCTURE] = variant
        return PlotFormState(variants=variants)

    def with_field(self, structure: PlotStructureType, name: str, value: str) -> "PlotFormState":
        return self.with_variant(self.get(structure).with_field(name, value))

    def cleared(self, structure: PlotStructureType) -> "PlotFormState":
        return self.with_variant(self.get(structure).cleared())

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {s.value: self.get(s).values() for s in PLOT_VARIANTS}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Dict[str, str]]]) -> "PlotFormState":
        """Build a form state, ignoring unknown structures and fields."""
        state = cls()
        for key, values in (data or {}).items():
            try:
                structure = PlotStructureType(key)
            except ValueError:
                continue
            variant_cls = PLOT_VARIANTS[structure]
            known = {k: str(v) for k, v in values.items() if k in variant_cls.field_names()}
            state = state.with_variant(variant_cls(**known))
        return state


@dataclass
class PlotSettings:
    """Plot basics plus the structured outline of a project."""

    theme: str = ""
    setting: str = ""
    hook: str = ""
    protagonist_goal: str = ""
    main_obstacle: str = ""
    structure: PlotStructureType = DEFAULT_STRUCTURE
    form: PlotFormState = field(default_factory=PlotFormState)

    @property
    def active(self) -> PlotVariant:
        return self.form.get(self.structure)

    def structure_details(self) -> str:
        return self.active.describe()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "theme": self.theme,
            "setting": self.setting,
            "hook": self.hook,
            "protagonist_goal": self.protagonist_goal,
            "main_obstacle": self.main_obstacle,
            "structure": self.structure.value,
            "form": self.form.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PlotSettings":
        data = data or {}
        return cls(
            theme=data.get("theme", ""),
            setting=data.get("setting", ""),
            hook=data.get("hook", ""),
            protagonist_goal=data.get("protagonist_goal", ""),
            main_obstacle=data.get("main_obstacle", ""),
            structure=parse_structure(data.get("structure")),
            form=PlotFormState.from_dict(data.get("form")),
        )


def structure_choices() -> List[str]:
    return [s.value for s in PlotStructureType]
