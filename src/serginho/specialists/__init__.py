"""serginho.specialists — persona registry for specialist chat."""

from serginho.specialists.registry import DEFAULT_SPECIALISTS, Specialist, SpecialistRegistry

__all__ = ["DEFAULT_SPECIALISTS", "Specialist", "SpecialistRegistry"]
