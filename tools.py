from __future__ import annotations
from enums import UnitSystem, decode


class WeightConverter:
    """Utility for converting between kg and lb."""

    KG_TO_LB = 2.20462

    @staticmethod
    def kg_to_lb(kg: float) -> float:
        return round(kg * WeightConverter.KG_TO_LB, 2)

    @staticmethod
    def lb_to_kg(lb: float) -> float:
        return round(lb / WeightConverter.KG_TO_LB, 2)

    @classmethod
    def to_display(cls, kg: float, system: UnitSystem | str) -> float:
        """Convert a stored kilogram value into the user's unit system."""
        if decode(UnitSystem, system) is UnitSystem.IMPERIAL:
            return cls.kg_to_lb(kg)
        return kg

    @classmethod
    def to_stored(cls, value: float, system: UnitSystem | str) -> float:
        if decode(UnitSystem, system) is UnitSystem.IMPERIAL:
            return cls.lb_to_kg(value)
        return value


class DistanceConverter:
    """Utility for converting between km and miles."""

    KM_TO_MI = 0.621371

    @staticmethod
    def km_to_mi(km: float) -> float:
        return round(km * DistanceConverter.KM_TO_MI, 2)

    @staticmethod
    def mi_to_km(mi: float) -> float:
        return round(mi / DistanceConverter.KM_TO_MI, 2)

    @classmethod
    def to_display(cls, km: float, system: UnitSystem | str) -> float:
        if decode(UnitSystem, system) is UnitSystem.IMPERIAL:
            return cls.km_to_mi(km)
        return km

    @classmethod
    def to_stored(cls, value: float, system: UnitSystem | str) -> float:
        if decode(UnitSystem, system) is UnitSystem.IMPERIAL:
            return cls.mi_to_km(value)
        return value
