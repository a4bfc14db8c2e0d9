"""
Calculator tool

Safely evaluates mathematical expressions using SymPy's parser.
Supports scientific calculator syntax including:
- Factorial notation: 5!
- Caret exponentiation: 2^16
- Degree notation: sin(30 degrees)
"""

import logging
import re

from sympy import N
from sympy.parsing.sympy_parser import (
    parse_expr,
    standard_transformations,
    implicit_multiplication_application,
    convert_xor,
    factorial_notation,
)

from .registry import ToolParameter, ToolRegistry

logger = logging.getLogger(__name__)

TRANSFORMATIONS = (
    standard_transformations
    + (implicit_multiplication_application,)
    + (convert_xor,)  # 2^16 -> 2**16
    + (factorial_notation,)  # 5! -> factorial(5)
)

# Results are rounded to this many decimal places.
PRECISION = 6


def preprocess_expression(expression: str) -> str:
    """
    Preprocess expression for SymPy compatibility.

    Handles:
        - Degree notation: sin(30 degrees) -> sin(30 * pi / 180)
        - ceil function: ceil(x) -> ceiling(x)
        - Unicode operators: × and ÷
    """
    degree_pattern = r"(\d+(?:\.\d+)?)\s*(?:degrees?|deg)\b"
    expression = re.sub(degree_pattern, r"(\1 * pi / 180)", expression, flags=re.IGNORECASE)
    expression = re.sub(r"\bceil\b", "ceiling", expression)
    return expression.replace("×", "*").replace("÷", "/")


def evaluate(expression: str) -> int | float:
    """
    Evaluate an expression to a real number.

    Raises:
        ValueError: If the expression is empty, malformed or not real.
    """
    if not expression or not expression.strip():
        raise ValueError("Expression is empty")

    try:
        expr = parse_expr(
            preprocess_expression(expression),
            transformations=TRANSFORMATIONS,
            evaluate=True,
        )
        value = complex(N(expr))
    except SyntaxError as e:
        raise ValueError(f"Syntax error: {e}") from e
    except (TypeError, ValueError) as e:
        raise ValueError(f"Cannot evaluate '{expression}': {e}") from e

    if value.imag != 0:
        raise ValueError(f"'{expression}' does not evaluate to a real number")

    result = round(value.real, PRECISION)
    if result.is_integer():
        return int(result)
    return result


def calculate(params: dict) -> dict:
    """Handle a calculator tool invocation."""
    expression = params["expression"]
    result = evaluate(expression)
    logger.debug(f"Calculated {expression} = {result}")
    return {
        "expression": expression,
        "result": result,
        "formatted": f"{expression} = {result}",
    }


def format_result_for_llm(result: dict) -> str:
    return result.get("formatted") or f"{result['expression']} = {result['result']}"


def register(registry: ToolRegistry) -> None:
    registry.register(
        name="calculator",
        description=(
            "Performs mathematical calculations. Supports arithmetic (+, -, *, /, ^), "
            "parentheses and common functions such as sqrt, sin, log and factorial."
        ),
        parameters=[
            ToolParameter(
                name="expression",
                type="string",
                description='Mathematical expression to evaluate (e.g., "2 + 3 * 4", "(10 + 5) / 3")',
                required=True,
            )
        ],
        handler=calculate,
        formatter=format_result_for_llm,
    )
