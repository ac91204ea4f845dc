"""
Specialist Registry - Named personas for /specialist-chat
=========================================================

A specialist is a system prompt plus sampling settings under a stable id.
The registry ships a small built-in roster and can be replaced or extended
from a YAML file:

    specialists:
      - id: code
        name: Code Master
        role: Especialista em Programação
        category: technical
        capabilities: [code, debugging, architecture]
        temperature: 0.3
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

import yaml

from serginho.core.exceptions import SpecialistNotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Specialist:
    id: str
    name: str
    role: str = "Specialist"
    category: str = "general"
    description: str = ""
    capabilities: tuple[str, ...] = ()
    system_prompt: str = ""
    temperature: float | None = None

    def __post_init__(self) -> None:
        if not self.system_prompt:
            object.__setattr__(self, "system_prompt", self._default_system_prompt())

    def _default_system_prompt(self) -> str:
        lines = [f"You are {self.name}, a specialist in {self.role}."]
        if self.capabilities:
            lines.append(f"Your capabilities: {', '.join(self.capabilities)}.")
        lines.append(f"Category: {self.category}.")
        lines.append("Always provide accurate, helpful, and safe responses.")
        return "\n".join(lines)

    def summary(self) -> dict[str, str]:
        """The block echoed back in specialist chat responses."""
        return {"id": self.id, "name": self.name, "category": self.category}

    @classmethod
    def from_mapping(cls, data: dict) -> "Specialist":
        missing = [key for key in ("id", "name") if not data.get(key)]
        if missing:
            raise ValidationError(
                f"Specialist entry missing required field(s): {', '.join(missing)}",
                details={"entry": data},
            )
        temperature = data.get("temperature")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            role=data.get("role", "Specialist"),
            category=data.get("category", "general"),
            description=data.get("description", ""),
            capabilities=tuple(data.get("capabilities") or ()),
            system_prompt=data.get("system_prompt", ""),
            temperature=float(temperature) if temperature is not None else None,
        )


DEFAULT_SPECIALISTS: tuple[Specialist, ...] = (
    Specialist(
        id="didak",
        name="Didak",
        role="Especialista em Didática",
        category="education",
        description="Ensino e metodologias de aprendizado",
        capabilities=("teaching", "curriculum-design", "assessment"),
    ),
    Specialist(
        id="code",
        name="Code Master",
        role="Especialista em Programação",
        category="technical",
        description="Desenvolvimento de software e coding",
        capabilities=("code", "debugging", "architecture"),
        temperature=0.3,
    ),
    Specialist(
        id="design",
        name="Design Pro",
        role="Especialista em Design",
        category="creative",
        description="UI/UX e design visual",
        capabilities=("design", "ui", "ux"),
        temperature=0.9,
    ),
    Specialist(
        id="marketing",
        name="Marketing Guru",
        role="Especialista em Marketing",
        category="business",
        description="Estratégia e tática de marketing",
        capabilities=("marketing", "sales", "strategy"),
    ),
    Specialist(
        id="data",
        name="Data Analyst",
        role="Especialista em Análise de Dados",
        category="technical",
        description="Análise, visualização e insights de dados",
        capabilities=("data-analysis", "statistics", "visualization"),
    ),
    Specialist(
        id="security",
        name="Security Expert",
        role="Especialista em Segurança",
        category="technical",
        description="Segurança da informação e criptografia",
        capabilities=("security", "encryption", "compliance"),
        temperature=0.2,
    ),
)


class SpecialistRegistry:
    """Lookup table of specialists keyed by id."""

    def __init__(self, specialists: Iterable[Specialist] = DEFAULT_SPECIALISTS) -> None:
        self._specialists: dict[str, Specialist] = {}
        for specialist in specialists:
            self.register(specialist)

    def register(self, specialist: Specialist) -> None:
        if specialist.id in self._specialists:
            logger.warning("Replacing specialist %s", specialist.id)
        self._specialists[specialist.id] = specialist

    def get(self, specialist_id: str) -> Specialist:
        try:
            return self._specialists[specialist_id]
        except KeyError:
            raise SpecialistNotFoundError(specialist_id, details={"specialist_id": specialist_id}) from None

    def by_category(self, category: str) -> list[Specialist]:
        return [s for s in self._specialists.values() if s.category == category]

    def __contains__(self, specialist_id: object) -> bool:
        return specialist_id in self._specialists

    def __iter__(self) -> Iterator[Specialist]:
        return iter(self._specialists.values())

    def __len__(self) -> int:
        return len(self._specialists)

    @classmethod
    def from_yaml(cls, path: str | Path, include_defaults: bool = True) -> "SpecialistRegistry":
        """
        Load specialists from a YAML file.

        Entries with an id already present in the defaults replace them.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValidationError: If an entry lacks ``id`` or ``name``
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Specialists file not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        entries = data.get("specialists", []) if isinstance(data, dict) else data
        registry = cls(DEFAULT_SPECIALISTS if include_defaults else ())
        for entry in entries:
            registry.register(Specialist.from_mapping(entry))
        logger.info("Loaded %d specialists from %s", len(registry), path)
        return registry
