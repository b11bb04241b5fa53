"""
Parsers for the plain-text output of pacman, AUR helpers and flatpak
All functions are pure and total: malformed input yields fewer records, never an exception
"""

from typing import Dict, List, Optional, Tuple

from archstore.models import Package, SOURCE_OFFICIAL, SOURCE_AUR, SOURCE_FLATPAK


DESCRIPTION_INDENT = "    "
AUR_PREFIX = "aur/"
INSTALLED_MARKER = "[installed]"


def _parse_repo_search(output: str, source: str, required_prefix: Optional[str] = None) -> List[Package]:
    """Parse `repo/name version [installed]` headers followed by indented descriptions"""
    packages = []
    lines = (output or "").splitlines()

    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1

        if not line.strip() or line.startswith(DESCRIPTION_INDENT):
            continue

        if required_prefix and not line.startswith(required_prefix):
            continue

        parts = line.split()
        name = parts[0].split('/')[-1]
        if not name:
            continue
        version = parts[1] if len(parts) > 1 else ""
        installed = INSTALLED_MARKER in line.lower()

        description = ""
        if i < len(lines) and lines[i].startswith(DESCRIPTION_INDENT):
            description = lines[i].strip()
            i += 1

        packages.append(Package(
            name=name,
            version=version,
            description=description,
            source=source,
            installed=installed
        ))

    return packages


def parse_pacman_search(output: str) -> List[Package]:
    """Parse `pacman -Ss` output"""
    return _parse_repo_search(output, SOURCE_OFFICIAL)


def parse_aur_search(output: str) -> List[Package]:
    """Parse `yay -Ss` / `paru -Ss` output, keeping only aur/ results"""
    return _parse_repo_search(output, SOURCE_AUR, required_prefix=AUR_PREFIX)


def parse_flatpak_search(output: str) -> List[Package]:
    """Parse tab-separated `flatpak search` output

    Columns: Name, Description, Application ID, Version, Branch, Remotes.
    The first line is a header and is skipped.
    """
    packages = []

    for line in (output or "").splitlines()[1:]:
        parts = line.split('\t')
        if len(parts) < 3:
            continue

        display_name = parts[0].strip()
        summary = parts[1].strip()
        app_id = parts[2].strip()
        if not app_id:
            continue
        version = parts[3].strip() if len(parts) > 3 else ""

        packages.append(Package(
            name=app_id,
            version=version,
            description=f"{display_name} - {summary}",
            source=SOURCE_FLATPAK
        ))

    return packages


def parse_installed_list(output: str, source: str) -> List[Package]:
    """Parse `pacman -Q` style `name version` lines"""
    packages = []

    for line in (output or "").splitlines():
        parts = line.split()
        if len(parts) >= 2:
            packages.append(Package(name=parts[0], version=parts[1], source=source, installed=True))

    return packages


def parse_flatpak_installed(output: str) -> List[Package]:
    """Parse `flatpak list --app` (Name, Application ID, Version, Branch, Installation)"""
    packages = []

    for line in (output or "").splitlines():
        parts = line.split('\t')
        if len(parts) < 2 or not parts[1].strip():
            continue

        packages.append(Package(
            name=parts[1].strip(),
            version=parts[2].strip() if len(parts) > 2 else "",
            description=parts[0].strip(),
            source=SOURCE_FLATPAK,
            installed=True
        ))

    return packages


def installed_flatpak_ids(output: str) -> Dict[str, str]:
    """Map application ID to installed version from `flatpak list --app` output"""
    return {pkg.name: pkg.version for pkg in parse_flatpak_installed(output)}


def parse_pending_updates(output: str, source: str) -> List[Package]:
    """Parse `checkupdates` / `yay -Qua` lines of the form `name old -> new`"""
    packages = []

    for line in (output or "").splitlines():
        parts = line.split()
        if len(parts) >= 4 and parts[2] == "->":
            packages.append(Package(
                name=parts[0],
                version=parts[3],
                description=f"{parts[1]} -> {parts[3]}",
                source=source,
                installed=True
            ))

    return packages


def parse_flatpak_updates(output: str, installed_versions: Optional[Dict[str, str]] = None) -> List[Package]:
    """Parse `flatpak remote-ls --updates --app --columns=name,application,version`"""
    installed_versions = installed_versions or {}
    packages = []

    for line in (output or "").splitlines():
        parts = line.split('\t')
        if len(parts) < 2 or not parts[1].strip():
            continue

        app_id = parts[1].strip()
        new_version = parts[2].strip() if len(parts) > 2 else ""
        current = installed_versions.get(app_id) or "installed"
        packages.append(Package(
            name=app_id,
            version=new_version,
            description=f"{current} -> {new_version or 'latest'}",
            source=SOURCE_FLATPAK,
            installed=True
        ))

    return packages


# Detail labels and the Package attribute each one fills
_DETAIL_FIELDS: Dict[str, str] = {
    'Name': 'name',
    'ID': 'name',
    'Version': 'version',
    'Description': 'description',
    'Installed Size': 'size',
    'Download Size': 'size',
    'Installed': 'size',
    'Maintainer': 'maintainer',
    'Packager': 'maintainer',
    'Popularity': 'rating',
    'Votes': 'downloads',
    'Last Modified': 'last_updated',
    'Build Date': 'last_updated',
    'Groups': 'category',
}


def _split_label(line: str) -> Tuple[str, str]:
    label, sep, value = line.partition(':')
    if not sep:
        return "", ""
    return label.strip(), value.strip()


def parse_package_info(output: str, source: str = SOURCE_OFFICIAL) -> Package:
    """Parse `pacman -Si`, `yay -Si` or `flatpak info` output into one record

    Each line is matched on its leading label; the value is everything after
    the first colon. Unknown lines are ignored, missing fields stay empty.
    """
    fields: Dict[str, str] = {}

    for line in (output or "").splitlines():
        label, value = _split_label(line)
        attr = _DETAIL_FIELDS.get(label)
        # Later lines win, so Installed Size overrides Download Size
        if attr:
            fields[attr] = value

    package = Package(
        name=fields.get('name', ""),
        version=fields.get('version', ""),
        description=fields.get('description', ""),
        source=source,
        maintainer=fields.get('maintainer', ""),
        size=fields.get('size', ""),
        last_updated=fields.get('last_updated', ""),
    )

    category = fields.get('category', "")
    if category and category != "None":
        package.category = category
    package.rating = _to_float(fields.get('rating'))
    package.downloads = _to_int(fields.get('downloads'))

    return package


def parse_multilib_enabled(config_text: str) -> bool:
    """True when a `[multilib]` section header is followed by an uncommented Include line"""
    in_multilib = False

    for line in (config_text or "").splitlines():
        stripped = line.strip()
        if stripped.startswith('[') and stripped.endswith(']'):
            in_multilib = stripped == "[multilib]"
        elif in_multilib and stripped.startswith("Include"):
            return True

    return False


def _to_float(value: Optional[str]) -> float:
    try:
        return float((value or "").replace(',', '.'))
    except ValueError:
        return 0.0


def _to_int(value: Optional[str]) -> int:
    try:
        return int(value or "")
    except ValueError:
        return 0
