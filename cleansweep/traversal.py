"""
File discovery: expand command-line targets into the source files to analyze.

A file is collected when its suffix maps to a supported language (see
parser.SUFFIX_LANGUAGES). Dependency trees, build output and VCS metadata
are pruned by default, so `cleansweep analyze .` in a JavaScript project
does not descend into node_modules.

Typical usage:
    from pathlib import Path
    from cleansweep.traversal import collect_targets, find_source_files

    # Every supported file under a project
    files = find_source_files(Path("./my_project"))

    # Only C, pruning a vendored tree as well
    c_files = find_source_files(
        Path("./my_project"),
        languages={"c"},
        ignore_dirs=DEFAULT_IGNORE_DIRS | {"third_party"},
    )

    # What the CLI does with its arguments
    files = collect_targets([Path("src"), Path("tools/gen.js")])
"""

import logging
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Set

from cleansweep.parser import language_for_path

logger = logging.getLogger(__name__)

# Directory names never descended into unless the caller passes its own set.
DEFAULT_IGNORE_DIRS: frozenset[str] = frozenset(
    {
        # JavaScript dependencies and bundler output
        "node_modules",
        "bower_components",
        "jspm_packages",
        "dist",
        "coverage",
        ".next",
        ".nuxt",
        # C build trees
        "build",
        "Build",
        "cmake-build-debug",
        "cmake-build-release",
        "obj",
        "out",
        # Vendored code
        "vendor",
        "deps",
        # VCS, editors, caches
        ".git",
        ".hg",
        ".svn",
        ".idea",
        ".vscode",
        ".cache",
        "__pycache__",
        ".venv",
        "venv",
    }
)


def is_source_file(path: Path, languages: Optional[Set[str]] = None) -> bool:
    """
    True if path has a suffix cleansweep can parse (optionally restricted to languages).

    Examples:
        >>> is_source_file(Path("main.c"))
        True
        >>> is_source_file(Path("app.js"), languages={"c"})
        False
        >>> is_source_file(Path("notes.txt"))
        False
    """
    language = language_for_path(path)
    return language is not None and (languages is None or language in languages)


def should_ignore_directory(dir_path: Path, ignore_dirs: Set[str]) -> bool:
    """Only the final path component is compared, case-sensitively."""
    return dir_path.name in ignore_dirs


def iter_source_files(
    root: Path,
    languages: Optional[Set[str]] = None,
    ignore_dirs: Optional[Set[str]] = None,
    follow_symlinks: bool = False,
) -> Iterator[Path]:
    """
    Yield supported source files under root, depth first, in no particular order.

    Unreadable subdirectories are logged and skipped.
    """
    if ignore_dirs is None:
        ignore_dirs = DEFAULT_IGNORE_DIRS
    pending = [root]
    while pending:
        directory = pending.pop()
        try:
            entries = list(directory.iterdir())
        except OSError as e:
            logger.warning("Cannot list directory %s: %s", directory, e)
            continue
        for entry in entries:
            if entry.is_symlink() and not follow_symlinks:
                logger.debug("Skipping symlink: %s", entry)
            elif entry.is_dir():
                if should_ignore_directory(entry, ignore_dirs):
                    logger.debug("Pruned directory: %s", entry)
                else:
                    pending.append(entry)
            elif entry.is_file() and is_source_file(entry, languages):
                yield entry


def find_source_files(
    root: Path,
    languages: Optional[Set[str]] = None,
    ignore_dirs: Optional[Set[str]] = None,
    follow_symlinks: bool = False,
    filter_fn: Optional[Callable[[Path], bool]] = None,
) -> list[Path]:
    """
    Recursively find supported source files in a directory tree.

    Args:
        root: Directory to search.
        languages: Restrict to these languages; None accepts every supported one.
        ignore_dirs: Directory names to prune. None means DEFAULT_IGNORE_DIRS.
        follow_symlinks: Descend into and collect symlinked entries.
        filter_fn: Extra predicate; files for which it returns False are dropped.

    Returns:
        Sorted list of resolved paths.

    Raises:
        FileNotFoundError: root does not exist.
        NotADirectoryError: root is not a directory.
    """
    root = root.resolve()
    if not root.exists():
        logger.error("Root directory does not exist: %s", root)
        raise FileNotFoundError(f"Root directory does not exist: {root}")
    if not root.is_dir():
        logger.error("Root path is not a directory: %s", root)
        raise NotADirectoryError(f"Root path is not a directory: {root}")

    logger.info("Starting traversal from: %s", root)
    files = sorted(
        path
        for path in iter_source_files(root, languages, ignore_dirs, follow_symlinks)
        if filter_fn is None or filter_fn(path)
    )
    logger.info("Traversal complete: found %d source file(s) in %s", len(files), root)
    return files


def collect_targets(
    targets: Iterable[Path],
    languages: Optional[Set[str]] = None,
    ignore_dirs: Optional[Set[str]] = None,
) -> list[Path]:
    """
    Expand files and directories into a de-duplicated list of source files.

    Files are kept in the order given; each directory contributes its sorted
    contents in its place.

    Raises:
        ValueError: a file target has an unsupported suffix, or a target is
            neither a file nor a directory.
    """
    seen: set[Path] = set()
    files: list[Path] = []
    for target in targets:
        if target.is_file():
            if not is_source_file(target, languages):
                raise ValueError(f"Unsupported source file: {target}")
            found = [target.resolve()]
        elif target.is_dir():
            found = find_source_files(target, languages=languages, ignore_dirs=ignore_dirs)
            if not found:
                logger.warning("No source files found under %s", target)
        else:
            raise ValueError(f"Target path is neither a file nor a directory: {target}")
        for path in found:
            if path not in seen:
                seen.add(path)
                files.append(path)
    return files
