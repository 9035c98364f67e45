"""Prompt construction for command synthesis.

Two locales are supported: "en" (primary) and "zh" (secondary). The system
prompt is a fixed template plus a snapshot of the live environment; the user
prompt either asks for a first command or embeds the previous attempt.
"""

import os
import platform
from typing import Mapping, Optional, Tuple

from shellcraft.execution_state import ExecutionAttempt


UNKNOWN = "Unknown"
UNKNOWN_OS = "Unknown OS"


SYSTEM_PROMPTS = {
    "en": """You are a shell command expert. Generate or improve a shell command based on the user's request and the result of the previous execution.

Requirements:
- On the first attempt (no execution history):
  - Generate one executable shell command
  - Keep the command general and complete, preferring built-in tools over third-party ones
  - Make sure every option and argument you use actually exists
  - Do not use code fences or any other formatting

- When there is an execution history:
  - Analyze the result of the previous command
  - Decide whether the expected goal was reached
  - If not, explain the likely cause and produce an improved command
  - Include the analysis and the improvement in your response

- When the task needs code or something the shell cannot do directly:
  - You may write a Python script, for example:
cat << 'EOF' > hello.py
print("Hello, World!")
# ...
EOF
cat << 'EOF' > requirements.txt
# list every package and version
...
EOF
python -m venv venv
source venv/bin/activate
pip install -r requirements.txt
python hello.py

- Stop conditions:
  - The command succeeded and reached the expected goal
  - Consecutive failures exceeded the limit
  - The user stopped manually
""",
    "zh": """你是一个Shell命令专家，请根据用户的需求和历史执行结果生成或优化shell命令。

要求：
- 如果是首次执行（没有历史记录）：
  - 生成一个可执行的shell命令
  - 命令应该尽可能通用和全面，优先使用终端自带的非第三方语句
  - 确保命令的所有参数都是正确且存在的
  - 不要使用代码块标记或其他格式标记

- 如果有历史执行记录：
  - 分析上一次命令的执行结果
  - 判断是否达到了预期目标
  - 如果未达到目标，分析可能的原因并生成改进的命令
  - 在响应中包含分析结果和改进建议

- 如果需要写代码或实现shell无法直接完成的功能：
  - 可以使用python脚本方式，例如：
cat << 'EOF' > hello.py
print("Hello, World!")
# ...
EOF
cat << 'EOF' > requirements.txt
# 列出所有的包和版本
...
EOF
python -m venv venv
source venv/bin/activate
pip install -r requirements.txt
python hello.py

- 终止条件：
  - 命令执行成功且达到预期目标
  - 连续失败次数超过限制
  - 用户手动终止
""",
}

SYSTEM_INFO_TEMPLATES = {
    "en": (
        "Current system environment:\n"
        "- Operating system: {os}\n"
        "- Shell: {shell}\n"
        "- Terminal: {term}\n"
        "- User: {user}\n"
        "- Working directory: {cwd}\n"
    ),
    "zh": (
        "当前系统环境信息：\n"
        "- 操作系统: {os}\n"
        "- Shell类型: {shell}\n"
        "- 终端类型: {term}\n"
        "- 当前用户: {user}\n"
        "- 当前目录: {cwd}\n"
    ),
}

FIRST_ATTEMPT_TEMPLATES = {
    "en": (
        "The user's request is: {task}. Generate exactly one shell command "
        "that accomplishes this request."
    ),
    "zh": "现在，用户的问题为：{task}，请你根据用户的问题生成对应的shell命令来实现用户的需求。",
}

RETRY_TEMPLATES = {
    "en": (
        "The user's request is: {task}\n"
        "The previous command was: {command}\n"
        "Its output was: {output}\n"
        "Did it succeed: {succeeded}\n"
        "This is attempt number {attempt}.\n"
        "Analyze the result above and decide whether the expected goal was reached. "
        "If it was not, explain why and generate an improved command."
    ),
    "zh": (
        "用户的问题为：{task}\n"
        "上一次执行的命令是：{command}\n"
        "执行结果是：{output}\n"
        "执行是否成功：{succeeded}\n"
        "这是第{attempt}次尝试。\n"
        "请根据上述信息分析执行结果，判断是否达到预期目标，如果没有达到目标，分析原因并生成改进的命令。"
    ),
}


def _check_locale(locale: str) -> None:
    if locale not in SYSTEM_PROMPTS:
        raise ValueError(
            f"Unsupported locale: {locale!r}. Use one of: {', '.join(SYSTEM_PROMPTS)}"
        )


def detect_os_family(system_name: Optional[str] = None) -> str:
    """Map platform.system() to a display name."""
    name = system_name if system_name is not None else platform.system()
    if name == "Darwin":
        return "macOS"
    if name in ("Linux", "Windows"):
        return name
    return UNKNOWN_OS


def get_system_info(
    locale: str = "en",
    environment: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Describe the live environment for the system prompt.

    Every field is resolved at call time. Missing values become "Unknown".

    Args:
        locale: Prompt locale ("en" or "zh")
        environment: Mapping to read variables from (default: os.environ)
    """
    _check_locale(locale)
    env = os.environ if environment is None else environment

    cwd = env.get("PWD")
    if not cwd and environment is None:
        try:
            cwd = os.getcwd()
        except OSError:
            cwd = None

    return SYSTEM_INFO_TEMPLATES[locale].format(
        os=detect_os_family(),
        shell=env.get("SHELL") or UNKNOWN,
        term=env.get("TERM") or UNKNOWN,
        user=env.get("USER") or env.get("USERNAME") or UNKNOWN,
        cwd=cwd or UNKNOWN,
    )


def build_user_prompt(
    task: str,
    previous_attempt: Optional[ExecutionAttempt] = None,
    locale: str = "en",
) -> str:
    """First-attempt prompt, or a retry prompt built from the latest attempt."""
    _check_locale(locale)
    if previous_attempt is None:
        return FIRST_ATTEMPT_TEMPLATES[locale].format(task=task)

    return RETRY_TEMPLATES[locale].format(
        task=task,
        command=previous_attempt.command,
        output=previous_attempt.output,
        succeeded=str(previous_attempt.succeeded).lower(),
        attempt=previous_attempt.attempt_number,
    )


def build_prompts(
    task: str,
    previous_attempt: Optional[ExecutionAttempt] = None,
    locale: str = "en",
    environment: Optional[Mapping[str, str]] = None,
) -> Tuple[str, str]:
    """
    Compose the (system, user) prompt pair for one synthesis call.

    Only the single most recent attempt is embedded; earlier attempts are
    not accumulated.

    Returns:
        (system_text, user_text)
    """
    _check_locale(locale)
    system_text = f"{SYSTEM_PROMPTS[locale]}\n{get_system_info(locale, environment)}"
    user_text = build_user_prompt(task, previous_attempt, locale)
    return system_text, user_text
