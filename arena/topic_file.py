"""Topic files: markdown motion text with optional YAML front matter."""

import logging
from pathlib import Path
from typing import Any

import frontmatter

from config.config_loader import debate_config_keys

logger = logging.getLogger(__name__)


def parse_topic_file(file_path: Path) -> tuple[str, dict[str, Any]]:
    """Parse a topic file.

    The body is the debate topic. Front matter keys that name a debate
    setting (``word_limit``, ``time_limit``, ...) become config overrides;
    any other key is ignored with a warning.

    Returns:
        (topic, overrides). overrides is {} when there is no front matter.
    """
    post = frontmatter.load(str(file_path))
    topic = post.content.strip()

    known = debate_config_keys()
    overrides: dict[str, Any] = {}
    for key, value in post.metadata.items():
        if key in known:
            overrides[key] = value
        else:
            logger.warning("Ignoring unknown front matter key '%s' in %s", key, file_path.name)

    return topic, overrides
