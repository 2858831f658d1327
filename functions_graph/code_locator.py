"""Find source files by name and content, and carve code blocks out of them."""

import logging
import os
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Folders that never contain project sources worth scanning
EXCLUDED_FOLDERS = frozenset(
    {
        "node_modules",
        "obj",
        ".vs",
        ".vscode",
        ".env",
        ".python_packages",
        ".git",
        ".github",
    }
)


@dataclass
class FileMatch:
    """A file found by find_first_match.

    Attributes:
        file_path: Path of the matching file
        code: Full file contents (None if contents were not requested)
        pos: Offset of the content match, or 0 if no content regex was given
        length: Length of the content match, or 0 if no content regex was given
    """

    file_path: str
    code: str | None = None
    pos: int = 0
    length: int = 0


@dataclass
class BracketedBlock:
    """Code carved out by extract_bracketed_block.

    Attributes:
        code: Text from the start offset up to and including the closing bracket
        open_bracket_pos: Position of the outermost opening bracket within code
    """

    code: str
    open_bracket_pos: int

    @property
    def declaration(self) -> str:
        """Text preceding the outermost opening bracket."""
        return self.code[: self.open_bracket_pos]

    @property
    def body(self) -> str:
        """The bracketed part, brackets included."""
        return self.code[self.open_bracket_pos :]


def read_text_file(path: str | Path) -> str:
    """Read a source file as UTF-8, dropping a BOM if present."""
    return Path(path).read_text(encoding="utf-8-sig")


def walk_files(
    root_dir: str | Path, name_pattern: str | re.Pattern
) -> Iterator[str]:
    """Yield paths of files under root_dir whose names match name_pattern.

    Files of a folder are yielded before its subfolders are entered. The walk
    keeps an explicit stack, so deep trees don't exhaust the call stack.

    Args:
        root_dir: Folder to search
        name_pattern: Regex (string patterns are case-insensitive) matched against file names
    """
    if isinstance(name_pattern, str):
        name_pattern = re.compile(name_pattern, re.IGNORECASE)

    stack = [Path(root_dir)]
    while stack:
        folder = stack.pop()
        try:
            with os.scandir(folder) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Failed to list {folder}: {e}")
            continue

        sub_folders = []
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                if entry.name.lower() not in EXCLUDED_FOLDERS:
                    sub_folders.append(Path(entry.path))
            elif name_pattern.search(entry.name):
                yield entry.path

        # Reversed, so that subfolders are popped in name order
        stack.extend(reversed(sub_folders))


def find_first_match(
    root_dir: str | Path,
    name_pattern: str | re.Pattern,
    return_contents: bool = False,
    content_regex: re.Pattern | None = None,
) -> FileMatch | None:
    """Find the first file under root_dir whose name (and optionally content) matches.

    Args:
        root_dir: Folder to search
        name_pattern: Regex (string patterns are case-insensitive) matched against file names
        return_contents: Whether to return file contents in the match
        content_regex: If given, the file's contents must match this regex

    Returns:
        FileMatch for the first matching file, or None if nothing matched
    """
    for file_path in walk_files(root_dir, name_pattern):
        if content_regex is None and not return_contents:
            return FileMatch(file_path=file_path)

        try:
            code = read_text_file(file_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {file_path}: {e}")
            continue

        if content_regex is None:
            return FileMatch(file_path=file_path, code=code)

        match = content_regex.search(code)
        if match:
            logger.debug(f"Pattern matched in {file_path} at {match.start()}")
            return FileMatch(
                file_path=file_path,
                code=code if return_contents else None,
                pos=match.start(),
                length=len(match.group(0)),
            )

    return None


def extract_bracketed_block(
    text: str,
    start_offset: int,
    open_char: str,
    close_char: str,
    required_chars: str = "",
) -> BracketedBlock | None:
    """Extract code from start_offset up to the bracket matching the first opening one.

    Brackets inside string literals and comments are counted like any other.
    When required_chars is given, a bracketed group is only accepted once one
    of those characters has been seen inside it; groups without any of them
    (e.g. "{id}" in a route template) are stepped over.

    Args:
        text: Source text
        start_offset: Where to start scanning
        open_char: Opening bracket, e.g. "{"
        close_char: Closing bracket, e.g. "}"
        required_chars: Characters the accepted group must contain

    Returns:
        BracketedBlock, or None if brackets never balance
    """
    depth = 0
    open_pos = -1
    required_found = not required_chars

    for i in range(start_offset, len(text)):
        char = text[i]
        if char == open_char:
            if depth == 0:
                open_pos = i
            depth += 1
        elif char == close_char:
            if depth == 0:
                # Stray closing bracket before the block starts
                continue
            depth -= 1
            if depth == 0:
                if required_found:
                    return BracketedBlock(
                        code=text[start_offset : i + 1],
                        open_bracket_pos=open_pos - start_offset,
                    )
                open_pos = -1
        elif depth > 0 and char in required_chars:
            required_found = True

    return None


def offset_to_line_number(text: str, offset: int) -> int:
    """Convert a character offset into a 1-based line number."""
    return text.count("\n", 0, offset) + 1
