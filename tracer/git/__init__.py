"""Git operations for tracer.

Return type conventions:
- run_git() returns GitResult: caller must check .success.
- Git methods raise GitError on failure, except get_config() which
  returns "" for an unset key and branch_exists() which returns False
  for a missing branch.
"""

from tracer.git.client import Git, GitOperations
from tracer.git.runner import GitResult, run_git
from tracer.git.status import (
    STATUS_ADDED,
    STATUS_DELETED,
    STATUS_MODIFIED,
    parse_name_status,
)

__all__ = [
    "Git",
    "GitOperations",
    "GitResult",
    "run_git",
    "STATUS_ADDED",
    "STATUS_DELETED",
    "STATUS_MODIFIED",
    "parse_name_status",
]
