"""Runtime settings for pemchain."""

from typing import Literal

import pydantic


# 10 megs... plenty for anything PEM-shaped
MAX_FILE_SIZE = 1024 * 1024 * 10

# stop expanding directories after this many files unless told otherwise
MAX_PATHS = 1000


class Settings(pydantic.BaseModel):
    """Application settings."""
    verbose:            bool = False
    debug:              bool = False
    max_file_size:      pydantic.conint(ge=0) = MAX_FILE_SIZE
    max_paths:          pydantic.conint(ge=0) = MAX_PATHS
    unlimited:          bool = False
    recursive:          bool = False
    hidden:             bool = False
    follow_symlinks:    bool = False
    cross_filesystems:  bool = False
    sort_paths:         bool = True
    output_format:      Literal["tree", "oneline", "json"] = "tree"
    header:             bool = True  # header row for oneline output
