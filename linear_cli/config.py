# linear_cli/config.py

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .exceptions import AliasNotFound, ConfigurationError, NoConfigFile
from .logger import logger

# Linear API Configuration
LINEAR_API_URL = "https://api.linear.app/graphql"
LINEAR_API_SETTINGS_URL = "https://linear.app/settings/api"

CONFIG_FILENAME = ".linear"
ALIAS_SECTION = "[aliases]"

# Environment fallbacks (apply to api_key and team only)
ENV_API_KEY = "LINEAR_API_KEY"
ENV_TEAM = "LINEAR_TEAM"

# Config file key -> Config attribute
SCALAR_FIELDS = {
    "api_key": "api_key",
    "team": "team_key",
    "default_project": "default_project",
    "default_milestone": "default_milestone",
    "agent_command": "agent_command",
}

# Maximum number of concurrent API requests
MAX_CONCURRENT_REQUESTS = 5

# Page sizes used by the list queries
ISSUES_PAGE_SIZE = 100
ROADMAP_ISSUES_PAGE_SIZE = 200
PROJECTS_PAGE_SIZE = 50
LABELS_PAGE_SIZE = 100
RELATIONS_PAGE_SIZE = 20

# Gap between neighbouring sort keys on a full reorder or boundary move
SORT_STEP = 1000

CHECKLIST_MATCH_THRESHOLD = 0.3

WORKTREE_ROOT = Path.home() / ".linear-worktrees"
WORKTREE_INCLUDE_FILE = ".worktreeinclude"

# Priority mapping (name -> Linear ordinal). Lower non-zero value = more urgent
PRIORITY_MAP = {
    "urgent": 1,
    "high": 2,
    "medium": 3,
    "low": 4,
    "none": 0,
}

PRIORITY_LABELS = {
    0: "",
    1: "Urgent",
    2: "High",
    3: "Medium",
    4: "Low",
}

# T-shirt size -> Linear estimate
ESTIMATE_MAP = {
    "xs": 0,
    "s": 1,
    "m": 2,
    "l": 3,
    "xl": 5,
}

# User-facing status names -> Linear workflow state types
STATUS_TYPE_MAP = {
    "backlog": "backlog",
    "todo": "unstarted",
    "in-progress": "started",
    "inprogress": "started",
    "in_progress": "started",
    "started": "started",
    "done": "completed",
    "completed": "completed",
    "canceled": "canceled",
    "cancelled": "canceled",
    "triage": "triage",
}

CLOSED_STATE_TYPES = ("completed", "canceled")
CLOSED_PROJECT_STATES = ("completed", "canceled")


@dataclass(frozen=True)
class Config:
    api_key: Optional[str] = None
    team_key: Optional[str] = None
    default_project: Optional[str] = None
    default_milestone: Optional[str] = None
    agent_command: Optional[str] = None
    aliases: Mapping[str, str] = field(default_factory=dict)
    config_file: Optional[Path] = None
    local_path: Optional[Path] = None
    global_path: Optional[Path] = None

    def require_auth(self):
        """Raise unless an API key and a team key are available."""
        if not self.api_key:
            raise ConfigurationError("Not logged in. Run 'linear login' first.")
        if not self.team_key:
            raise ConfigurationError(
                f"No team configured. Set 'team' in {CONFIG_FILENAME} or {ENV_TEAM}."
            )

    def resolve_alias(self, name_or_code: Optional[str]) -> Optional[str]:
        """Substitute an alias code (any case) with its target name."""
        if not name_or_code:
            return name_or_code
        return self.aliases.get(name_or_code.upper()) or name_or_code

    def find_alias_for(self, name: str) -> Optional[str]:
        """
        Find the most specific alias whose target is a prefix of ``name``.

        :param name: Resolved project or milestone name
        :return: Alias code or None if no target qualifies
        """
        lower_name = name.lower()
        best_match = None
        best_length = 0
        for code, target in self.aliases.items():
            lower_target = target.lower()
            if lower_name.startswith(lower_target) and len(lower_target) > best_length:
                best_match = code
                best_length = len(lower_target)
        return best_match


def parse_config_text(text: str) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Parse the contents of a config file.

    :param text: File contents
    :return: (scalar fields keyed by file key, aliases keyed by upper-case code)
    """
    fields = {}
    aliases = {}
    in_alias_section = False

    for line in text.split("\n"):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        if stripped == ALIAS_SECTION:
            in_alias_section = True
            continue
        if stripped.startswith("[") and stripped.endswith("]"):
            in_alias_section = False
            continue

        if "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        value = value.strip()

        if in_alias_section:
            aliases[key.upper()] = value
        else:
            fields[key] = value

    return fields, aliases


def _read_config_file(path: Optional[Path]) -> Tuple[Dict[str, str], Dict[str, str]]:
    if path is None or not path.is_file():
        return {}, {}
    return parse_config_text(path.read_text(encoding="utf-8"))


def load_config(
    cwd: Optional[Path] = None,
    home: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """
    Load the layered configuration.

    Every recognized field resolves to the local file value if present, else the
    global file value, else the environment (api key and team only). Aliases
    are layered the same way, code by code.

    :param cwd: Directory holding the local config file (defaults to cwd)
    :param home: Directory holding the global config file (defaults to ~)
    :param environ: Environment mapping (defaults to os.environ)
    :return: Config object
    """
    cwd = Path.cwd() if cwd is None else Path(cwd)
    home = Path.home() if home is None else Path(home)
    environ = os.environ if environ is None else environ

    local_path = cwd / CONFIG_FILENAME
    global_path = home / CONFIG_FILENAME

    global_fields, global_aliases = _read_config_file(global_path)
    local_fields, local_aliases = _read_config_file(local_path)

    values = {}
    for file_key, attribute in SCALAR_FIELDS.items():
        value = local_fields.get(file_key) or global_fields.get(file_key)
        if value:
            values[attribute] = value

    if "api_key" not in values and environ.get(ENV_API_KEY):
        values["api_key"] = environ[ENV_API_KEY]
    if "team_key" not in values and environ.get(ENV_TEAM):
        values["team_key"] = environ[ENV_TEAM]

    aliases = dict(global_aliases)
    aliases.update(local_aliases)

    return Config(
        aliases=aliases,
        config_file=active_config_file(local_path, global_path),
        local_path=local_path,
        global_path=global_path,
        **values,
    )


def active_config_file(local_path: Path, global_path: Path) -> Optional[Path]:
    """Return the nearest existing config file, local first."""
    if local_path.is_file():
        return local_path
    if global_path.is_file():
        return global_path
    return None


def _is_section_header(stripped: str) -> bool:
    return stripped.startswith("[") and stripped.endswith("]")


def _alias_key(stripped: str) -> str:
    return stripped.split("=", 1)[0].strip().upper()


def save_alias(config: Config, code: str, name: str) -> Config:
    """
    Upsert an alias into the ``[aliases]`` section of the active config file.

    Non-alias lines are kept verbatim; a new section is appended at the end of
    the file when none exists.

    :param config: Current configuration
    :param code: Alias code (stored upper-case)
    :param name: Target project or milestone name
    :return: Config with the alias applied
    """
    if config.config_file is None:
        raise NoConfigFile()

    path = config.config_file
    lines = path.read_text(encoding="utf-8").split("\n")
    upper_code = code.upper()
    alias_line = f"{upper_code}={name}"

    # Only the first [aliases] section is edited
    section_start = None
    section_end = len(lines)
    for index, line in enumerate(lines):
        stripped = line.strip()
        if section_start is None:
            if stripped == ALIAS_SECTION:
                section_start = index
        elif _is_section_header(stripped):
            section_end = index
            break

    existing_line = None
    last_entry = section_start
    if section_start is not None:
        for index in range(section_start + 1, section_end):
            stripped = lines[index].strip()
            if not stripped or stripped.startswith("#"):
                continue
            last_entry = index
            if _alias_key(stripped) == upper_code:
                existing_line = index

    if existing_line is not None:
        lines[existing_line] = alias_line
    elif section_start is not None:
        lines.insert(last_entry + 1, alias_line)
    else:
        while lines and lines[-1] == "":
            lines.pop()
        if lines:
            lines.append("")
        lines.extend([ALIAS_SECTION, alias_line, ""])

    path.write_text("\n".join(lines), encoding="utf-8")

    aliases = dict(config.aliases)
    aliases[upper_code] = name
    return replace(config, aliases=aliases)


def _alias_files(config: Config) -> List[Path]:
    paths = []
    for path in (config.config_file, config.local_path, config.global_path):
        if path is not None and path.is_file() and path not in paths:
            paths.append(path)
    return paths


def _strip_alias(path: Path, upper_code: str) -> bool:
    content = path.read_text(encoding="utf-8")
    _, file_aliases = parse_config_text(content)
    if upper_code not in file_aliases:
        return False

    kept = []
    in_alias_section = False
    for line in content.split("\n"):
        stripped = line.strip()
        if stripped == ALIAS_SECTION:
            in_alias_section = True
        elif _is_section_header(stripped):
            in_alias_section = False
        elif (
            in_alias_section
            and stripped
            and not stripped.startswith("#")
            and _alias_key(stripped) == upper_code
        ):
            continue
        kept.append(line)

    path.write_text("\n".join(kept), encoding="utf-8")
    return True


def remove_alias(config: Config, code: str) -> Config:
    """
    Remove an alias from every config file that defines it.

    Aliases are layered local over global, so dropping only the local entry
    would let a global definition of the same code take effect again.

    :param config: Current configuration
    :param code: Alias code (any case)
    :return: Config without the alias
    """
    if config.config_file is None:
        raise NoConfigFile()

    upper_code = code.upper()
    removed_from = [path for path in _alias_files(config) if _strip_alias(path, upper_code)]
    if not removed_from:
        raise AliasNotFound(code)
    logger.debug(f"Removed alias {upper_code} from {', '.join(map(str, removed_from))}")

    aliases = {k: v for k, v in config.aliases.items() if k != upper_code}
    return replace(config, aliases=aliases)


def write_fields(path: Path, values: Dict[str, str]):
    """
    Set scalar keys in a config file, creating it when missing.

    Existing keys are rewritten in place; other lines, including the alias
    section, are preserved.

    :param path: Config file path
    :param values: File key -> value
    """
    if not path.exists():
        lines = ["# Linear CLI configuration"]
        lines.extend(f"{key}={value}" for key, value in values.items())
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return

    lines = path.read_text(encoding="utf-8").split("\n")
    pending = dict(values)
    first_section = len(lines)

    for index, line in enumerate(lines):
        stripped = line.strip()
        if _is_section_header(stripped):
            first_section = index
            break
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key = stripped.split("=", 1)[0].strip()
        if key in pending:
            lines[index] = f"{key}={pending.pop(key)}"

    insert_at = first_section
    while insert_at > 0 and lines[insert_at - 1].strip() == "":
        insert_at -= 1
    new_lines: List[str] = [f"{key}={value}" for key, value in pending.items()]
    lines[insert_at:insert_at] = new_lines

    path.write_text("\n".join(lines), encoding="utf-8")


def ensure_line(path: Path, entry: str) -> bool:
    """
    Append ``entry`` to a newline-separated file unless already listed.

    :return: True if the file was changed
    """
    content = path.read_text(encoding="utf-8") if path.exists() else ""
    if entry in (line.strip() for line in content.split("\n")):
        return False
    newline = "" if content == "" or content.endswith("\n") else "\n"
    path.write_text(f"{content}{newline}{entry}\n", encoding="utf-8")
    return True
