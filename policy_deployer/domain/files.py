from glob import escape, glob
from os.path import isfile, join as path_join
from typing import List, Sequence


def collect_definition_files(
    files: Sequence[str] = None, directory: str = None, recurse: bool = False
) -> List[str]:
    """Resolve the definition files a run should process.

    Either the explicit `files`, kept verbatim, or every `*.json` file in
    `directory` (and its subdirectories when `recurse` is set). Order is
    whatever the filesystem listing returns.
    """
    if bool(files) == bool(directory):
        raise ValueError("exactly one of files or directory is required")

    if files:
        return list(files)

    return _glob_json(directory, recurse)


def _glob_json(directory, recurse=False):
    # the directory name is literal, only the file part is a pattern
    if recurse:
        pattern = path_join(escape(directory), "**", "*.json")
    else:
        pattern = path_join(escape(directory), "*.json")
    return [path for path in glob(pattern, recursive=recurse) if isfile(path)]
