"""
Runtime diagnostics for PostgreSQL startup failures on Linux.

The prebuilt binaries link against system libraries (libxml2 most
often). When one is missing, startup fails with a loader error; this
module turns that into install instructions.
"""

import re
import subprocess
from pathlib import Path
from typing import List, Optional

LIB_PATHS = [
    "/usr/lib/x86_64-linux-gnu",
    "/usr/lib/aarch64-linux-gnu",
    "/usr/lib",
    "/lib/x86_64-linux-gnu",
    "/lib",
    "/usr/local/lib",
]

LIBXML2_SONAME = "libxml2.so.2"
LIBXML2_ALTERNATE_SONAME = "libxml2.so.16"

_SONAME_RE = re.compile(r"([A-Za-z0-9._+-]+\.so(?:\.\d+)*)\b")
_POSTGRES_BIN_RE = re.compile(r"(/[^\s\"']*/bin/postgres)\b")
_LDD_NOT_FOUND_RE = re.compile(r"(\S+)\s+=>\s+not found")


def extract_missing_libraries(message: str) -> List[str]:
    """Shared-object names mentioned in an error message."""
    return list(dict.fromkeys(_SONAME_RE.findall(message)))


def extract_binary_path(message: str) -> str:
    match = _POSTGRES_BIN_RE.search(message)
    return match.group(1) if match else ""


def missing_from_binary(binary_path: str) -> List[str]:
    """Libraries `ldd` reports as not found for binary_path."""
    if not binary_path:
        return []
    try:
        result = subprocess.run(["ldd", binary_path], capture_output=True, text=True, check=False)
    except OSError:
        return []
    output = f"{result.stdout or ''} {result.stderr or ''}"
    return _LDD_NOT_FOUND_RE.findall(output)


def find_library(name: str, search_paths: Optional[List[str]] = None) -> str:
    """First file under the library search paths named `name*` ('' if none)."""
    matches = []
    for base in search_paths or LIB_PATHS:
        base_path = Path(base)
        if not base_path.is_dir():
            continue
        for candidate in sorted(base_path.glob(f"{name}*")):
            if candidate.name == name:
                return str(candidate)
            matches.append(str(candidate))
    return matches[0] if matches else ""


def runtime_help(error: BaseException) -> List[str]:
    """
    Install hints for an engine startup error.

    Returns an empty list when the error is not about missing libraries.
    """
    message = str(error)
    binary_path = extract_binary_path(message)
    missing = list(dict.fromkeys(
        extract_missing_libraries(message) + missing_from_binary(binary_path)
    ))
    if not missing:
        return []

    lines = [
        "PostgreSQL startup failed due to missing Linux runtime dependencies.",
        f"Missing libraries: {', '.join(missing)}",
        "",
        "Install system packages for your distro and retry:",
        "  Ubuntu/Debian: sudo apt-get update && sudo apt-get install -y libxml2",
        "  Fedora/RHEL:   sudo dnf install -y libxml2",
        "  Alpine:        sudo apk add libxml2",
    ]
    if binary_path:
        lines.append(f"  Check with: ldd {binary_path} | grep 'not found'")
    if "/bin/bin/postgres" in binary_path:
        lines.append("  pg_local looks partially provisioned; remove it and retry: rm -rf pg_local")

    if LIBXML2_SONAME in missing and not find_library(LIBXML2_SONAME):
        fallback = find_library(LIBXML2_ALTERNATE_SONAME)
        if fallback:
            lines.extend([
                "",
                f"This host only provides {LIBXML2_ALTERNATE_SONAME} at {fallback}.",
                f"A symlink may work: sudo ln -sfn {fallback} /usr/local/lib/{LIBXML2_SONAME} && sudo ldconfig",
            ])
    return lines
