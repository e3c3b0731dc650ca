"""Question instance generation from registered template strategies.

Items reference a generator by name plus parameters. A strategy is a plain
function ``(rng, **params)`` returning a :class:`GeneratedInstance` (or a
mapping with ``question``/``answer`` and an optional ``image``). Strategies
see only the random source and their own parameters.

:func:`run_generator` is the only entry point the engine uses. It never
raises: unknown strategies, bad parameters, faults inside a strategy and
malformed results all come back as :data:`PLACEHOLDER`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, MutableSequence, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction
from math import gcd
from typing import Any, Protocol, TypeVar

from .models import GeneratorRef

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RandomSource(Protocol):
    """Randomness capability injected into sampling and generation."""

    def random(self) -> float: ...

    def randint(self, a: int, b: int) -> int: ...

    def choice(self, seq: Sequence[T]) -> T: ...

    def sample(self, population: Sequence[T], k: int) -> list[T]: ...

    def shuffle(self, x: MutableSequence[Any]) -> None: ...


@dataclass(frozen=True)
class GeneratedInstance:
    """One concrete question/answer pair."""

    question: str
    answer: str
    image: str | None = None


PLACEHOLDER = GeneratedInstance(question="Error", answer="Error")

Strategy = Callable[..., object]

_REGISTRY: dict[str, Strategy] = {}


def register_generator(name: str) -> Callable[[Strategy], Strategy]:
    """Register a strategy function under a name."""

    def decorator(func: Strategy) -> Strategy:
        if name in _REGISTRY:
            raise ValueError(f"Generator already registered: {name}")
        _REGISTRY[name] = func
        return func

    return decorator


def get_generator(name: str) -> Strategy | None:
    """Return a registered strategy by name."""
    return _REGISTRY.get(name)


def registered_generators() -> list[str]:
    """Return registered strategy names, sorted."""
    return sorted(_REGISTRY)


def run_generator(ref: GeneratorRef | None, rng: RandomSource) -> GeneratedInstance:
    """Produce one instance for a generator reference, or the placeholder on any fault."""
    if ref is None:
        return PLACEHOLDER
    strategy = _REGISTRY.get(ref.name)
    if strategy is None:
        logger.warning("Unknown generator %r", ref.name)
        return PLACEHOLDER
    try:
        result = strategy(rng, **ref.params)
    except Exception:
        logger.warning("Generator %r failed", ref.name, exc_info=True)
        return PLACEHOLDER
    instance = _coerce_instance(result)
    if instance is None:
        logger.warning("Generator %r returned a non-conforming result: %r", ref.name, result)
        return PLACEHOLDER
    return instance


def _coerce_instance(result: object) -> GeneratedInstance | None:
    """Validate a strategy result."""
    if isinstance(result, GeneratedInstance):
        question, answer, image = result.question, result.answer, result.image
    elif isinstance(result, Mapping):
        question = result.get("question")
        answer = result.get("answer")
        image = result.get("image")
    else:
        return None
    if not isinstance(question, str) or not question.strip():
        return None
    if not isinstance(answer, str) or not answer.strip():
        return None
    if image is not None and not isinstance(image, str):
        return None
    return GeneratedInstance(question=question, answer=answer, image=image or None)


@register_generator("fixed")
def _fixed(rng: RandomSource, question: str, answer: str, image: str | None = None) -> GeneratedInstance:
    return GeneratedInstance(question=question, answer=answer, image=image)


@register_generator("addition")
def _addition(rng: RandomSource, low: int = 1, high: int = 10) -> GeneratedInstance:
    a = rng.randint(low, high)
    b = rng.randint(low, high)
    return GeneratedInstance(question=f"What is ${a} + {b}$?", answer=f"${a + b}$")


@register_generator("subtraction")
def _subtraction(rng: RandomSource, low: int = 1, high: int = 20, allow_negative: bool = False) -> GeneratedInstance:
    a = rng.randint(low, high)
    b = rng.randint(low, high)
    if not allow_negative and b > a:
        a, b = b, a
    return GeneratedInstance(question=f"What is ${a} - {b}$?", answer=f"${a - b}$")


@register_generator("multiplication")
def _multiplication(rng: RandomSource, low: int = 2, high: int = 12) -> GeneratedInstance:
    a = rng.randint(low, high)
    b = rng.randint(low, high)
    return GeneratedInstance(question=f"What is ${a} \\times {b}$?", answer=f"${a * b}$")


@register_generator("percentage_of_amount")
def _percentage_of_amount(
    rng: RandomSource, percentages: Sequence[int] = (10, 20, 25, 50, 75), low: int = 2, high: int = 40
) -> GeneratedInstance:
    percent = rng.choice(list(percentages))
    # Multiples of 20 keep the default percentages whole.
    amount = rng.randint(low, high) * 20
    value = Fraction(percent * amount, 100)
    answer = str(value.numerator) if value.denominator == 1 else f"{float(value):g}"
    return GeneratedInstance(question=f"Find ${percent}\\%$ of ${amount}$", answer=f"${answer}$")


@register_generator("simplify_fraction")
def _simplify_fraction(rng: RandomSource, max_denominator: int = 12, max_factor: int = 6) -> GeneratedInstance:
    denominator = rng.randint(2, max_denominator)
    numerator = rng.randint(1, denominator - 1)
    divisor = gcd(numerator, denominator)
    numerator, denominator = numerator // divisor, denominator // divisor
    factor = rng.randint(2, max_factor)
    question = f"Simplify $\\frac{{{numerator * factor}}}{{{denominator * factor}}}$"
    return GeneratedInstance(question=question, answer=f"$\\frac{{{numerator}}}{{{denominator}}}$")


@register_generator("linear_equation")
def _linear_equation(rng: RandomSource, max_coefficient: int = 9, max_solution: int = 12) -> GeneratedInstance:
    a = rng.randint(2, max_coefficient)
    x = rng.randint(-max_solution, max_solution)
    b = rng.randint(-20, 20)
    c = a * x + b
    if b == 0:
        left = f"{a}x"
    elif b > 0:
        left = f"{a}x + {b}"
    else:
        left = f"{a}x - {-b}"
    return GeneratedInstance(question=f"Solve ${left} = {c}$", answer=f"$x = {x}$")


@register_generator("round_to_places")
def _round_to_places(rng: RandomSource, places: int = 1, high: int = 100) -> GeneratedInstance:
    scale = 10 ** (places + 2)
    value = Decimal(rng.randint(scale, high * scale)).scaleb(-(places + 2))
    rounded = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    unit = "decimal place" if places == 1 else "decimal places"
    return GeneratedInstance(
        question=f"Round ${value}$ to {places} {unit}",
        answer=f"${rounded}$",
    )


@register_generator("triangle_angle")
def _triangle_angle(rng: RandomSource, min_angle: int = 20, max_angle: int = 100) -> GeneratedInstance:
    a = rng.randint(min_angle, max_angle)
    b = rng.randint(min_angle, max(min_angle, 160 - a))
    missing = 180 - a - b
    image = (
        '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 200 120">'
        '<polygon points="20,100 180,100 90,20" fill="none" stroke="black" stroke-width="2"/>'
        f'<text x="32" y="95" font-size="12">{a}°</text>'
        f'<text x="150" y="95" font-size="12">{b}°</text>'
        '<text x="84" y="42" font-size="12">x</text>'
        "</svg>"
    )
    return GeneratedInstance(question="Find the missing angle $x$", answer=f"${missing}°$", image=image)
