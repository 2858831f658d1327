"""Locate a Functions project on disk (cloning it first, if needed) and determine its kind."""

import asyncio
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path

from functions_graph.code_locator import find_first_match
from functions_graph.models import ProjectKind

logger = logging.getLogger(__name__)

HOST_JSON = "host.json"

# https://github.com/owner/repo/tree/branch/relative/path
GITHUB_TREE_URL_REGEX = re.compile(
    r"^(?P<org>https?://[^/]+/[^/]+)/(?P<repo>[^/]+)/tree/(?P<branch>[^/]+)(?:/(?P<path>.+))?$",
    re.IGNORECASE,
)

DOTNET_PROJECT_FILE_REGEX = re.compile(r".+\.(f|c)sproj$", re.IGNORECASE)
# Isolated worker projects reference the worker SDK
DOTNET_ISOLATED_MARKER_REGEX = re.compile(
    r"Microsoft\.Azure\.Functions\.Worker", re.IGNORECASE
)
JAVA_BUILD_FILES = ("pom.xml", "build.gradle", "build.gradle.kts")


class ProjectLoadError(Exception):
    """Fatal error preparing a project for traversal."""

    def __init__(self, message: str, phase: str = "locating"):
        super().__init__(message)
        self.phase = phase


@dataclass
class ClonedRepo:
    """A repository cloned into a temporary folder."""

    temp_folder: str
    project_folder: str


@dataclass
class LocatedProject:
    """A project ready to be traversed.

    Attributes:
        project_folder: Root of the project sources
        host_json_path: Path of the host.json file that was found
        host_json_folder: Folder containing host.json (in the sources)
        functions_folder: Folder to read function.json files from
            (the publish output for .NET in-process projects)
        kind: Runtime flavor of the project
    """

    project_folder: str
    host_json_path: str
    host_json_folder: str
    functions_folder: str
    kind: ProjectKind


async def _run_command(args: list[str], cwd: str, phase: str) -> None:
    """Run an external command, raising ProjectLoadError if it fails."""
    logger.debug(f"Running {' '.join(args)} in {cwd}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ProjectLoadError(f"{args[0]} not found in PATH", phase=phase) from e

    stdout_bytes, stderr_bytes = await proc.communicate()
    if proc.returncode != 0:
        output = (stderr_bytes or stdout_bytes or b"").decode("utf-8", errors="replace")
        raise ProjectLoadError(
            f"{' '.join(args)} failed (exit {proc.returncode}): {output.strip()}",
            phase=phase,
        )


def is_git_url(project_path: str) -> bool:
    return project_path.lower().startswith("http")


async def clone_from_github(url: str, temp_folders: list[str]) -> ClonedRepo:
    """Clone a repository into a fresh temporary folder, recorded in temp_folders.

    Accepts either a plain repository URL or a GitHub tree URL
    (https://github.com/owner/repo/tree/branch/relative/path), in which case
    the given branch is cloned and the relative path becomes the project folder.

    Raises:
        ProjectLoadError: If git is missing or the clone fails
    """
    match = GITHUB_TREE_URL_REGEX.match(url)
    branch = None
    relative_path = ""
    if match:
        repo_name = match.group("repo")
        repo_url = f"{match.group('org')}/{repo_name}.git"
        branch = match.group("branch")
        relative_path = match.group("path") or ""
    else:
        repo_url = url.rstrip("/")
        repo_name = repo_url.rsplit("/", 1)[-1]

    if repo_name.endswith(".git"):
        repo_name = repo_name[: -len(".git")]

    temp_folder = tempfile.mkdtemp(prefix="git-clone-")
    temp_folders.append(temp_folder)

    args = ["git", "clone", "--depth", "1"]
    if branch:
        args += ["-b", branch]
    args += [repo_url, repo_name]

    await _run_command(args, cwd=temp_folder, phase="cloning")

    return ClonedRepo(
        temp_folder=temp_folder,
        project_folder=os.path.join(temp_folder, repo_name, relative_path),
    )


def find_host_json(project_folder: str) -> str:
    """Find the first host.json under project_folder.

    Raises:
        ProjectLoadError: If there is no host.json
    """
    match = find_first_match(project_folder, re.compile(r"^host\.json$", re.IGNORECASE))
    if match is None:
        raise ProjectLoadError(
            f"{HOST_JSON} file not found under the provided project path: {project_folder}",
            phase="locating",
        )
    return match.file_path


def is_dotnet_project(folder: str) -> bool:
    """Check whether folder directly contains a .csproj or .fsproj file."""
    try:
        names = os.listdir(folder)
    except OSError:
        return False
    return any(
        DOTNET_PROJECT_FILE_REGEX.match(name) and name.lower() != "extensions.csproj"
        for name in names
    )


def is_dotnet_isolated_project(project_folder: str) -> bool:
    """Check whether the project file references the isolated worker SDK."""
    match = find_first_match(
        project_folder, DOTNET_PROJECT_FILE_REGEX, content_regex=DOTNET_ISOLATED_MARKER_REGEX
    )
    return match is not None


def is_java_project(folder: str) -> bool:
    """Check whether folder contains JVM build metadata."""
    return any(os.path.isfile(os.path.join(folder, name)) for name in JAVA_BUILD_FILES)


async def publish_dotnet_project(project_folder: str, temp_folders: list[str]) -> str:
    """Run `dotnet publish` into a fresh temporary folder.

    The folder is recorded in temp_folders before publishing starts, so the
    caller can clean it up even if publishing fails.

    Raises:
        ProjectLoadError: If dotnet is missing or publishing fails
    """
    publish_folder = tempfile.mkdtemp(prefix="dotnet-publish-")
    temp_folders.append(publish_folder)

    logger.info(f"Publishing {project_folder} to {publish_folder}...")
    await _run_command(
        ["dotnet", "publish", "-o", publish_folder], cwd=project_folder, phase="publishing"
    )
    return publish_folder


async def locate_project(
    project_path: str, temp_folders: list[str], publish: bool = True
) -> LocatedProject:
    """Resolve a local path or git URL into a project ready for traversal.

    Args:
        project_path: Local folder or http(s) URL of a git repository
        temp_folders: Caller-owned list; every temporary folder created is appended here
        publish: Whether to `dotnet publish` .NET in-process projects

    Returns:
        LocatedProject describing where to read descriptors from

    Raises:
        ProjectLoadError: If cloning, locating host.json or publishing fails
    """
    project_folder = project_path
    if is_git_url(project_path):
        logger.info(f"Cloning {project_path}")
        cloned = await clone_from_github(project_path, temp_folders)
        logger.info(f"Successfully cloned to {cloned.temp_folder}")
        project_folder = cloned.project_folder

    if not os.path.isdir(project_folder):
        raise ProjectLoadError(
            f"Project folder does not exist: {project_folder}", phase="locating"
        )

    host_json_path = await asyncio.to_thread(find_host_json, project_folder)
    logger.info(f"Found {HOST_JSON} at {host_json_path}")
    host_json_folder = str(Path(host_json_path).parent)
    functions_folder = host_json_folder

    # The isolated marker is searched for in the whole project, not just next to host.json
    if await asyncio.to_thread(is_dotnet_isolated_project, project_folder):
        kind = ProjectKind.DOTNET_ISOLATED
    elif is_dotnet_project(host_json_folder):
        kind = ProjectKind.DOTNET_IN_PROCESS
        if publish:
            functions_folder = await publish_dotnet_project(host_json_folder, temp_folders)
    elif is_java_project(host_json_folder) or is_java_project(project_folder):
        kind = ProjectKind.JAVA
    else:
        kind = ProjectKind.SCRIPT_BASED

    logger.info(f"Project kind: {kind.value}")
    return LocatedProject(
        project_folder=project_folder,
        host_json_path=host_json_path,
        host_json_folder=host_json_folder,
        functions_folder=functions_folder,
        kind=kind,
    )


def read_project_file(project_folder: str) -> str | None:
    """Return the contents of the first .csproj/.fsproj file under project_folder."""
    match = find_first_match(project_folder, DOTNET_PROJECT_FILE_REGEX, return_contents=True)
    if match is None:
        return None
    return match.code
