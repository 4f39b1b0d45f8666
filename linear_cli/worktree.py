# linear_cli/worktree.py

import re
import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .config import WORKTREE_INCLUDE_FILE, WORKTREE_ROOT
from .exceptions import GitError
from .logger import logger
from .utils import slugify

BRANCH_ISSUE_PATTERN = re.compile(r"^([A-Z]+-\d+)")

# Checked in order; the first lockfile found decides the manager
PACKAGE_MANAGERS = [
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("bun.lockb", "bun"),
    ("package-lock.json", "npm"),
    ("uv.lock", "uv"),
    ("poetry.lock", "poetry"),
    ("package.json", "npm"),
]

INSTALL_COMMANDS = {
    "pnpm": ["pnpm", "install"],
    "yarn": ["yarn", "install"],
    "bun": ["bun", "install"],
    "npm": ["npm", "install"],
    "uv": ["uv", "sync"],
    "poetry": ["poetry", "install"],
}


def branch_name(identifier: str, title: str) -> str:
    return f"{identifier}-{slugify(title)}"


def issue_from_branch(branch: str) -> Optional[str]:
    """Extract the issue identifier prefix of a branch (ISSUE-12-title -> ISSUE-12)."""
    match = BRANCH_ISSUE_PATTERN.match(branch or "")
    return match.group(1) if match else None


def detect_package_manager(directory: Path) -> Optional[str]:
    for lockfile, manager in PACKAGE_MANAGERS:
        if (directory / lockfile).exists():
            return manager
    return None


def read_include_manifest(repo_root: Path) -> List[str]:
    manifest = repo_root / WORKTREE_INCLUDE_FILE
    if not manifest.is_file():
        return []
    entries = []
    for line in manifest.read_text(encoding="utf-8").split("\n"):
        line = line.strip()
        if line and not line.startswith("#"):
            entries.append(line)
    return entries


class Git:
    """Thin wrapper executing git commands."""

    def __init__(self, cwd: Optional[Path] = None):
        self.cwd = cwd

    def run(self, args: List[str], cwd: Optional[Path] = None, check: bool = True):
        """
        Run a git command.

        :param args: Command arguments (without 'git' prefix)
        :param cwd: Working directory override
        :param check: If True, raise GitError on non-zero exit
        :return: subprocess.CompletedProcess
        """
        try:
            result = subprocess.run(
                ["git"] + args,
                cwd=str(cwd or self.cwd) if (cwd or self.cwd) else None,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError:
            raise GitError("git not found")

        if check and result.returncode != 0:
            raise GitError(result.stderr.strip() or result.stdout.strip() or "git failed")
        return result

    def output(self, args: List[str], cwd: Optional[Path] = None) -> str:
        return self.run(args, cwd=cwd).stdout.strip()

    def repo_root(self) -> Path:
        try:
            return Path(self.output(["rev-parse", "--show-toplevel"]))
        except GitError:
            raise GitError("Not in a git repository")

    def current_branch(self) -> str:
        return self.output(["branch", "--show-current"])

    def is_ignored(self, path: str, cwd: Path) -> bool:
        return self.run(["check-ignore", "-q", path], cwd=cwd, check=False).returncode == 0

    def is_in_worktree(self) -> bool:
        """A linked worktree's git dir lives under <main>/.git/worktrees/<name>."""
        try:
            git_dir = self.output(["rev-parse", "--git-dir"])
        except GitError:
            return False
        return "worktrees" in Path(git_dir).parts

    def main_worktree(self) -> Optional[Path]:
        """The first entry of ``git worktree list`` is the main working tree."""
        try:
            listing = self.output(["worktree", "list", "--porcelain"])
        except GitError:
            return None
        for line in listing.split("\n"):
            if line.startswith("worktree "):
                return Path(line[len("worktree "):])
        return None

    def has_uncommitted_changes(self) -> bool:
        return bool(self.output(["status", "--porcelain"]))


@dataclass
class WorktreePlan:
    identifier: str
    branch: str
    path: Path
    repo_root: Path
    package_manager: Optional[str] = None
    exists: bool = False

    def shell_command(self, agent_command: Optional[str] = None) -> str:
        command = f'cd "{self.path}"'
        if agent_command:
            command += f' && {agent_command} "/next {self.identifier}"'
        return command


@dataclass
class CleanupPlan:
    main_repo: Path
    worktree: Path
    branch: str
    keep_branch: bool = False
    commands: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.commands:
            self.commands = [
                f'cd "{self.main_repo}"',
                f'git worktree remove "{self.worktree}"',
            ]
            if not self.keep_branch:
                self.commands.append(f'git branch -d "{self.branch}"')

    @property
    def one_liner(self) -> str:
        return " && ".join(self.commands)


class WorktreeOrchestrator:
    def __init__(self, git: Optional[Git] = None, root: Path = WORKTREE_ROOT):
        self.git = git or Git()
        self.root = Path(root)

    def plan(self, identifier: str, title: str) -> WorktreePlan:
        """Work out branch, path and package manager without touching disk."""
        repo_root = self.git.repo_root()
        branch = branch_name(identifier, title)
        path = self.root / repo_root.name / branch
        return WorktreePlan(
            identifier=identifier,
            branch=branch,
            path=path,
            repo_root=repo_root,
            package_manager=detect_package_manager(repo_root),
            exists=path.exists(),
        )

    def create(self, plan: WorktreePlan) -> List[str]:
        """
        Create the worktree, copy ignored include paths and install dependencies.

        :param plan: Plan from ``plan()``
        :return: Include paths copied into the worktree
        """
        plan.path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Creating worktree at {plan.path}")
        try:
            self.git.run(
                ["worktree", "add", str(plan.path), "-b", plan.branch], cwd=plan.repo_root
            )
        except GitError:
            # Branch already exists: attach the worktree to it instead
            try:
                self.git.run(
                    ["worktree", "add", str(plan.path), plan.branch], cwd=plan.repo_root
                )
            except GitError as e:
                raise GitError(f"Failed to create worktree: {e.message}")

        copied = self.copy_includes(plan.repo_root, plan.path)
        self.install_dependencies(plan.path)
        return copied

    def copy_includes(self, repo_root: Path, worktree_path: Path) -> List[str]:
        """Copy manifest paths that exist and are git-ignored; tracked files are skipped."""
        copied = []
        for entry in read_include_manifest(repo_root):
            source = repo_root / entry
            if not source.exists():
                continue
            if not self.git.is_ignored(entry, cwd=repo_root):
                logger.debug(f"Skipping {entry}: not ignored by git")
                continue

            destination = worktree_path / entry
            destination.parent.mkdir(parents=True, exist_ok=True)
            if source.is_dir():
                shutil.copytree(source, destination, dirs_exist_ok=True)
            else:
                shutil.copy2(source, destination)
            copied.append(entry)
        return copied

    def install_dependencies(self, worktree_path: Path) -> Optional[str]:
        """Run the detected manager's install; a failure only warns."""
        manager = detect_package_manager(worktree_path)
        if manager is None:
            return None

        logger.info(f"Installing dependencies with {manager}...")
        try:
            # stdout is reserved for the eval-able cd command
            result = subprocess.run(
                INSTALL_COMMANDS[manager],
                cwd=str(worktree_path),
                stdout=sys.stderr,
                stderr=sys.stderr,
            )
            if result.returncode != 0:
                logger.warning(f"{manager} install failed, continuing anyway")
        except OSError as e:
            logger.warning(f"{manager} install failed ({e}), continuing anyway")
        return manager

    def create_branch(self, name: str):
        """Create and check out ``name`` in the current repository."""
        self.git.repo_root()
        if self.git.has_uncommitted_changes():
            logger.warning("You have uncommitted changes")
        try:
            self.git.run(["checkout", "-b", name])
        except GitError as e:
            if "already exists" in e.message:
                raise GitError(f"Branch '{name}' already exists. Try: git checkout {name}")
            raise GitError(f"Git error: {e.message}")

    def cleanup_plan(self, cwd: Path, keep_branch: bool = False) -> Optional[CleanupPlan]:
        """
        Commands that remove the current worktree, or None outside a worktree.

        The commands are printed, not run: a child process cannot change the
        parent shell's directory.
        """
        if not self.git.is_in_worktree():
            return None
        main_repo = self.git.main_worktree()
        if main_repo is None:
            return None
        return CleanupPlan(
            main_repo=main_repo,
            worktree=cwd,
            branch=self.git.current_branch(),
            keep_branch=keep_branch,
        )
