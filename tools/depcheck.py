from __future__ import annotations

import argparse
import ast
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

_FRAMEWORKS = {
    "fastapi",
    "starlette",
    "sqlalchemy",
    "alembic",
    "redis",
    "httpx",
    "requests",
}

SRC_ROOT = Path(__file__).resolve().parents[1] / "src" / "rpos"

# layer -> modules it may not import
LAYER_POLICIES: dict[str, frozenset[str]] = {
    "domain": frozenset(
        _FRAMEWORKS
        | {
            "pydantic",
            "opentelemetry",
            "prometheus_client",
            "rpos.application",
            "rpos.api",
            "rpos.bot",
            "rpos.infrastructure",
        }
    ),
    "application": frozenset(_FRAMEWORKS | {"rpos.api", "rpos.bot", "rpos.infrastructure"}),
}

FORBIDDEN_MODULES = LAYER_POLICIES["domain"]


@dataclass(frozen=True)
class Violation:
    file_path: Path
    line: int
    module: str


def _python_files(root: Path) -> Iterable[Path]:
    if root.is_file() and root.suffix == ".py":
        yield root
        return
    if root.is_dir():
        yield from root.rglob("*.py")


def _matches_forbidden(module: str, forbidden: frozenset[str]) -> bool:
    for name in forbidden:
        if module == name or module.startswith(f"{name}."):
            return True
    return False


def _scan_file(file_path: Path, forbidden: frozenset[str]) -> list[Violation]:
    tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
    violations: list[Violation] = []

    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if _matches_forbidden(alias.name, forbidden):
                    violations.append(
                        Violation(file_path=file_path, line=node.lineno, module=alias.name)
                    )
        elif isinstance(node, ast.ImportFrom) and node.module:
            if _matches_forbidden(node.module, forbidden):
                violations.append(
                    Violation(file_path=file_path, line=node.lineno, module=node.module)
                )

    return violations


def find_violations(
    paths: Sequence[Path],
    forbidden: frozenset[str] = FORBIDDEN_MODULES,
) -> list[Violation]:
    violations: list[Violation] = []
    for path in paths:
        for file_path in _python_files(path):
            violations.extend(_scan_file(file_path, forbidden))
    return violations


def check_layers(src_root: Path = SRC_ROOT) -> list[Violation]:
    violations: list[Violation] = []
    for layer, forbidden in LAYER_POLICIES.items():
        violations.extend(find_violations([src_root / layer], forbidden))
    return violations


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Layer dependency check for src/rpos (domain and application)."
    )
    parser.add_argument(
        "--path",
        action="append",
        default=[],
        help="Path to scan with the domain policy (repeatable). Defaults to every layer.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    if args.path:
        violations = find_violations([Path(item) for item in args.path])
    else:
        violations = check_layers()

    if not violations:
        print("depcheck passed")
        return 0

    print("depcheck failed: forbidden imports detected")
    for violation in violations:
        print(f"{violation.file_path}:{violation.line} -> {violation.module}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
