"""
Исключения unitcore

Все ошибки фатальны для одной операции и не требуют отката: значения
неизменяемы, частичного состояния не бывает.

Переполнение точной арифметики при синтезе множителей ошибкой НЕ является
(детерминированный переход на float, см. core.math.factors).
"""


class UnitcoreError(Exception):
    """Базовый класс ошибок unitcore."""

    pass


class DimensionMismatch(UnitcoreError, ValueError):
    """
    Несовместимые размерности.

    Возникает при сложении/вычитании, упорядочивающих сравнениях,
    min/max и конверсии между разными размерностями.
    Проверка равенства (==) это исключение НЕ бросает, а возвращает False.
    """

    def __init__(self, left: object, right: object, operation: str = "operation"):
        self.left = left
        self.right = right
        self.operation = operation
        super().__init__(
            f"Dimensional mismatch in {operation}: {left} is incompatible with {right}"
        )


class InvalidPrefix(UnitcoreError, KeyError):
    """Запрошен незарегистрированный SI-префикс (показатель степени десяти)."""

    def __init__(self, tens: int):
        self.tens = tens
        super().__init__(f"Invalid prefix: no SI prefix registered for 10^{tens}")

    def __str__(self) -> str:
        return self.args[0]


class UnknownUnit(UnitcoreError, KeyError):
    """Символ единицы/размерности или атом без зарегистрированных данных."""

    def __init__(self, name: str, what: str = "unit"):
        self.name = name
        super().__init__(f"Unknown {what}: {name!r}")

    def __str__(self) -> str:
        return self.args[0]


class RegistryFrozen(UnitcoreError, RuntimeError):
    """Попытка объявления в реестре после freeze()."""

    pass


class DuplicateDeclaration(UnitcoreError, ValueError):
    """Повторное объявление имени или символа в реестре."""

    pass
