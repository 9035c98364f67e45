"""Tests for model output sanitizing."""

import pytest

from shellcraft.sanitizer import clean_command_output


class TestFencedBlocks:
    """Commands wrapped in code fences."""

    def test_bash_tagged_block(self):
        """A bash-tagged block yields exactly its interior."""
        assert clean_command_output("```bash\nls -la\n```") == "ls -la"

    def test_shell_tagged_block(self):
        assert clean_command_output("```shell\ndf -h\n```") == "df -h"

    def test_sh_tagged_block(self):
        assert clean_command_output("```sh\nls -la\n```") == "ls -la"

    def test_untagged_block(self):
        assert clean_command_output("```\npwd\n```") == "pwd"

    def test_block_inside_prose(self):
        """Explanatory text around the block is dropped."""
        raw = "Here is the command:\n```bash\ndu -sh *\n```\nIt shows sizes."
        assert clean_command_output(raw) == "du -sh *"

    def test_first_block_wins(self):
        raw = "```bash\necho first\n```\nor\n```bash\necho second\n```"
        assert clean_command_output(raw) == "echo first"

    def test_multiline_interior_kept(self):
        raw = "```bash\ncd /tmp\nls\n```"
        assert clean_command_output(raw) == "cd /tmp\nls"


class TestPlainText:
    """Responses without a fenced block."""

    def test_trims_outer_whitespace(self):
        assert clean_command_output("  \n ls -la \n") == "ls -la"

    def test_inner_whitespace_untouched(self):
        """No whitespace collapsing inside the command."""
        assert clean_command_output("echo 'a   b'") == "echo 'a   b'"

    def test_inline_backticks_untouched(self):
        assert clean_command_output("echo `date`") == "echo `date`"

    def test_unterminated_fence_is_plain_text(self):
        assert clean_command_output("```bash\nls") == "```bash\nls"

    def test_empty(self):
        assert clean_command_output("   ") == ""


@pytest.mark.parametrize("raw", [
    "```bash\nls -la\n```",
    "  ```shell\n  echo hi  \n```  ",
    "text before ```\nuname -a\n``` text after",
    "``````",
    "````",
    "```bash\nls",
    "plain command  ",
    "",
    "\t\n",
    "```\n```bash\nnested?\n```\n```",
])
def test_idempotent(raw):
    """Cleaning an already-clean command changes nothing."""
    once = clean_command_output(raw)
    assert clean_command_output(once) == once
