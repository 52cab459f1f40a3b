"""Pre-commit helper: no explicit commit()/rollback() in DVHL routes or services.

Services own their transaction with ``async with db.begin():``; helpers that
run on the caller's transaction must not end it early. The CLI and scripts
are not checked.

With no arguments, scans ``dvhl/routes`` and ``dvhl/services``.
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path

_FORBIDDEN_ATTRS = {"commit", "rollback"}
_DEFAULT_ROOTS = ("dvhl/routes", "dvhl/services")


def _iter_sources(paths: list[Path]) -> list[Path]:
    sources: list[Path] = []
    for path in paths:
        if path.is_dir():
            sources.extend(sorted(path.rglob("*.py")))
        elif path.suffix == ".py":
            sources.append(path)
    return sources


def _find_violations(paths: list[Path]) -> list[str]:
    violations: list[str] = []
    for path in _iter_sources(paths):
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
        for node in ast.walk(tree):
            if (
                isinstance(node, ast.Call)
                and isinstance(node.func, ast.Attribute)
                and node.func.attr in _FORBIDDEN_ATTRS
            ):
                violations.append(f"{path}:{node.lineno}")
    return violations


def main(argv: list[str]) -> int:
    paths = [Path(arg) for arg in argv[1:]] or [Path(root) for root in _DEFAULT_ROOTS]
    violations = _find_violations(paths)
    if not violations:
        return 0

    sys.stderr.write(
        "\n".join(
            [
                "Explicit commit()/rollback() calls are not allowed in DVHL routes"
                " or services. Wrap the work in `async with db.begin(): ...` instead.",
                "",
                "Violations:",
                *sorted(violations),
                "",
            ]
        )
    )
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
