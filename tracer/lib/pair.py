"""Pair programming session state.

The partner is recorded in git config (`current.pair`) and mirrored into
Config.pair_name so it survives outside the repository.
"""

from tracer.git.client import GitOperations
from tracer.lib.config import ConfigResolver
from tracer.lib.constants import KEY_CURRENT_PAIR
from tracer.lib.errors import ValidationError


def start_pair(git: GitOperations, config: ConfigResolver, partner: str) -> None:
    if not partner:
        raise ValidationError("partner name cannot be empty")

    cfg = config.load()
    git.set_config(KEY_CURRENT_PAIR, partner)
    cfg.pair_name = partner
    config.save(cfg)


def stop_pair(git: GitOperations, config: ConfigResolver) -> None:
    cfg = config.load()
    git.unset_config(KEY_CURRENT_PAIR)
    cfg.pair_name = ""
    config.save(cfg)


def current_pair(git: GitOperations) -> str:
    """Current partner, or "" when no session is active."""
    return git.get_config(KEY_CURRENT_PAIR)
