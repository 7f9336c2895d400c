"""Module executed when ``python -m payroll_api`` is invoked."""

from .main import run


if __name__ == "__main__":
    run()
