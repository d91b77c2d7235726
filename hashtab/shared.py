import sys
from typing import Any


def printf(format: str, *args: Any):
    print(format.format(*args), end="")


def printf_err(format: str, *args: Any):
    print(format.format(*args), end="", file=sys.stderr)


def is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0
