"""
Atoms & Canonicalizer — алгебра единиц и размерностей

Атом — элементарный именованный тег единицы или размерности со степенью:
    Atom(name="Meter", tens=3, power=2)  ≡  km²
    Atom(name="Length", tens=0, power=1) ≡  [L]

Композит (Units / Dimensions) — произведение атомов в КАНОНИЧЕСКОЙ форме:
1. Атомы отсортированы по (name, tens, power)
2. Атомы с одинаковыми (name, tens) слиты, степени просуммированы
3. Атомы с нулевой итоговой степенью удалены (m * m^-1 → 1)

КРИТИЧЕСКИЕ ИНВАРИАНТЫ:
1. Канонический атом никогда не имеет power == 0
2. В композите нет двух атомов с одинаковыми (name, tens): cm и m различны
3. canonicalize(canonicalize(X)) == canonicalize(X)
4. Пустой композит — единица (безразмерность)
5. Размерностные атомы всегда имеют tens == 0

Units помнят реестр, которым созданы (registry не участвует в равенстве
и хэше). Произведения и степени наследуют реестр операнда; Units без
реестра разрешаются через процессный реестр по умолчанию.
"""

from dataclasses import dataclass, field
from fractions import Fraction
from itertools import chain
from numbers import Number, Rational
from typing import TYPE_CHECKING, Iterable, Iterator, Optional, Tuple, TypeVar, Union

from unitcore.core.math.numerical_safeguards import normalize_power, rationalize

if TYPE_CHECKING:
    from unitcore.registry.registry import UnitRegistry

Exponent = Union[int, Fraction, float]

C = TypeVar("C", bound="Composite")


# =============================================================================
# ATOM
# =============================================================================


@dataclass(frozen=True, order=True)
class Atom:
    """
    Элементарный тег единицы или размерности.

    Порядок сравнения полей (name, tens, power) совпадает с ключом
    канонической сортировки.

    Attributes:
        name: Символическое имя ("Meter", "Gram", "Length")
        tens: Показатель SI-префикса (3 для kilo); 0 для размерностей
        power: Рациональная степень
    """

    name: str
    tens: int = 0
    power: Fraction = Fraction(1)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Atom name must be non-empty")
        if isinstance(self.tens, bool) or not isinstance(self.tens, int):
            raise TypeError(f"Atom tens must be int, got {type(self.tens).__name__}")
        if not isinstance(self.power, Rational):
            raise TypeError(
                f"Atom power must be int or Fraction, got {type(self.power).__name__}"
            )
        object.__setattr__(self, "power", Fraction(self.power))

    @property
    def identity(self) -> Tuple[str, int]:
        """Ключ слияния: атомы с одинаковым identity складывают степени."""
        return (self.name, self.tens)

    def __pow__(self, exponent: Exponent) -> "Atom":
        return Atom(self.name, self.tens, self.power * as_exponent(exponent))

    def __repr__(self) -> str:
        return f"Atom({self.name!r}, tens={self.tens}, power={normalize_power(self.power)})"


def as_exponent(exponent: Exponent) -> Fraction:
    """
    Приведение показателя степени к Fraction.

    float переводится в дробь с ограниченным знаменателем (0.5 → 1/2),
    чтобы сохранить точное сокращение степеней.

    Raises:
        TypeError: Если показатель не число
    """
    if isinstance(exponent, Rational):
        return Fraction(exponent)
    if isinstance(exponent, float):
        return rationalize(exponent)
    raise TypeError(f"Unsupported exponent type: {type(exponent).__name__}")


def atom_sort_key(atom: Atom) -> Tuple[str, int, Fraction]:
    """Полный порядок: name — основной ключ, tens — вторичный, power — третичный."""
    return (atom.name, atom.tens, atom.power)


# =============================================================================
# CANONICALIZER
# =============================================================================


def canonicalize(*atom_lists: Iterable[Atom]) -> Tuple[Atom, ...]:
    """
    Каноническая форма произведения списков атомов.

    Алгоритм:
    1. Конкатенация всех списков
    2. Сортировка по (name, tens, power)
    3. Один проход: соседние атомы с одинаковыми (name, tens) сливаются
       суммированием степеней
    4. Удаление атомов с нулевой итоговой степенью

    Args:
        *atom_lists: Операнды произведения

    Returns:
        Кортеж атомов — единственный представитель класса эквивалентности

    Examples:
        >>> m, s = Atom("Meter"), Atom("Second")
        >>> canonicalize([s, m], [m])
        (Atom('Meter', tens=0, power=2), Atom('Second', tens=0, power=1))
        >>> canonicalize([m], [m ** -1])
        ()
    """
    ordered = sorted(chain.from_iterable(atom_lists), key=atom_sort_key)

    merged: list[Atom] = []
    for atom in ordered:
        if merged and merged[-1].identity == atom.identity:
            previous = merged.pop()
            atom = Atom(atom.name, atom.tens, previous.power + atom.power)
        merged.append(atom)

    return tuple(atom for atom in merged if atom.power != 0)


# =============================================================================
# COMPOSITES
# =============================================================================


@dataclass(frozen=True)
class Composite:
    """
    Базовый класс Units / Dimensions.

    Хранит атомы только в канонической форме (canonicalize в __post_init__),
    поэтому равенство композитов — это равенство кортежей атомов,
    а сами композиты пригодны как ключи кэша.
    """

    atoms: Tuple[Atom, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "atoms", canonicalize(self.atoms))

    @classmethod
    def product(cls: type[C], *composites: "Composite") -> C:
        """N-арное каноническое произведение композитов одного семейства."""
        for composite in composites:
            if not isinstance(composite, cls):
                raise TypeError(
                    f"Cannot combine {type(composite).__name__} with {cls.__name__}"
                )
        return cls(tuple(chain.from_iterable(c.atoms for c in composites)))

    @property
    def is_identity(self) -> bool:
        """Пустой композит: безразмерность / отсутствие единиц."""
        return not self.atoms

    def __iter__(self) -> Iterator[Atom]:
        return iter(self.atoms)

    def __len__(self) -> int:
        return len(self.atoms)

    def __pow__(self: C, exponent: Exponent) -> C:
        factor = as_exponent(exponent)
        return self._with_atoms(tuple(atom ** factor for atom in self.atoms))

    def inv(self: C) -> C:
        """Обратный композит: все степени с противоположным знаком."""
        return self ** -1

    def sqrt(self: C) -> C:
        """Квадратный корень: степени умножаются на 1/2 точно."""
        return self ** Fraction(1, 2)

    def _combine(self: C, other: object, invert: bool) -> C:
        operand = other.inv() if invert else other
        return self._with_atoms(self.atoms + operand.atoms)

    def _with_atoms(self: C, atoms: Tuple[Atom, ...]) -> C:
        return type(self)(atoms)

    def __repr__(self) -> str:
        inner = ", ".join(repr(atom) for atom in self.atoms)
        return f"{type(self).__name__}({inner})"


@dataclass(frozen=True, repr=False)
class Dimensions(Composite):
    """Произведение размерностных атомов (Length, Time, Temperature, ...)."""

    def __post_init__(self) -> None:
        super().__post_init__()
        for atom in self.atoms:
            if atom.tens != 0:
                raise ValueError(f"Dimension atom {atom.name!r} cannot carry tens={atom.tens}")

    def __mul__(self, other: object) -> "Dimensions":
        if isinstance(other, Dimensions):
            return self._combine(other, invert=False)
        return NotImplemented

    def __truediv__(self, other: object) -> "Dimensions":
        if isinstance(other, Dimensions):
            return self._combine(other, invert=True)
        return NotImplemented


@dataclass(frozen=True, repr=False)
class Units(Composite):
    """
    Произведение атомов единиц (km, s^-1, ...).

    Умножение числа на Units создаёт Quantity; Units × Units —
    чисто символическое объединение без множителей конверсии.
    """

    registry: Optional["UnitRegistry"] = field(default=None, compare=False)

    @classmethod
    def product(cls, *composites: "Composite") -> "Units":
        result = super().product(*composites)
        return result.bind(_first_registry(composites))

    def bind(self, registry: Optional["UnitRegistry"]) -> "Units":
        """Те же единицы, привязанные к реестру."""
        if registry is None or registry is self.registry:
            return self
        return Units(self.atoms, registry)

    def resolve_registry(self) -> "UnitRegistry":
        """Реестр, которому принадлежат единицы (по умолчанию — процессный)."""
        if self.registry is not None:
            return self.registry
        # Отложенный импорт: реестр зависит от atoms
        from unitcore.registry.defaults import get_registry

        return get_registry()

    def _with_atoms(self, atoms: Tuple[Atom, ...]) -> "Units":
        return Units(atoms, self.registry)

    def _combine(self, other: object, invert: bool) -> "Units":
        combined = super()._combine(other, invert)
        if combined.registry is None:
            return combined.bind(other.registry)
        return combined

    def __mul__(self, other: object):
        if isinstance(other, Units):
            return self._combine(other, invert=False)
        if isinstance(other, Number):
            return _make_quantity(other, self)
        return NotImplemented

    def __rmul__(self, other: object):
        if isinstance(other, Number):
            return _make_quantity(other, self)
        return NotImplemented

    def __truediv__(self, other: object):
        if isinstance(other, Units):
            return self._combine(other, invert=True)
        if isinstance(other, Number):
            return _make_quantity(1 / other, self)
        return NotImplemented

    def __rtruediv__(self, other: object):
        if isinstance(other, Number):
            return _make_quantity(other, self.inv())
        return NotImplemented

    def __str__(self) -> str:
        return self.resolve_registry().format_units(self)


def _first_registry(composites: Iterable[Composite]) -> Optional["UnitRegistry"]:
    for composite in composites:
        registry = getattr(composite, "registry", None)
        if registry is not None:
            return registry
    return None


def _make_quantity(value, units: Units):
    # Отложенный импорт: quantity зависит от atoms
    from unitcore.core.domain.quantity import Quantity

    return Quantity(value, units)


# Безразмерность и отсутствие единиц
NO_UNITS: Units = Units()
NO_DIMENSIONS: Dimensions = Dimensions()
