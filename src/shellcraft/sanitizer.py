"""Strip formatting artifacts from model output to get a bare command."""

import re

# First fenced block, optionally tagged shell/bash/sh. The lazy body never
# contains a fence, so cleaning twice gives the same result.
_FENCED_BLOCK = re.compile(r"```(?:shell|bash|sh)?\s*\n?(.*?)```", re.DOTALL)


def clean_command_output(raw_text: str) -> str:
    """
    Return the command text carried by a model response.

    If the response contains a fenced code block, the interior of the first
    block is returned, trimmed. Otherwise the whole response is trimmed.
    Nothing else is touched: no re-escaping, no inner whitespace changes.
    """
    match = _FENCED_BLOCK.search(raw_text)
    if match:
        return match.group(1).strip()
    return raw_text.strip()
