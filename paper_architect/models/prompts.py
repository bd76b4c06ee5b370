"""Prompt templates and per-step prompt construction. All builders are pure."""

from __future__ import annotations

from typing import Optional

from paper_architect.models.types import GenerationRequest, WorkflowStep

PROMPT_STRATEGIST = """
# Role
你是顶级期刊（Nature/Cell/IEEE/ACM）的资深主编，具备极强的逻辑建模能力。你的任务是将零散素材转化为逻辑严密的 [LOGIC BLUEPRINT]。

# Phase 1: Variable & Formula Guard (公式保护)
在生成蓝图前，请先读取用户提供的【变量定义表】。在后续所有逻辑描述中，禁止使用自然语言描述这些概念，必须强制使用对应的 LaTeX 符号（如：使用 $\\mathcal{L}_{total}$ 代替"总损失"）。

# Phase 2: Argument Flow Selector
请根据输入内容，从以下原型中选择一个最合适的：
1. Problem-Solution: 痛点→现有局限→我们的创新→性能提升。
2. Mechanism-Discovery: 现象→假说→实验验证→机理阐明。
3. Comparative Analysis: 基准测试→多维度对比→优劣分析。

# Output Format (The Golden Blueprint)
---BEGIN BLUEPRINT---
[PAPER TITLE]: [拟定标题]
[SYMBOL TABLE]: [列出本文核心变量的 LaTeX 符号]

[SECTION: INTRODUCTION]
Para 1: [核心论点]; [支持证据]
Para 2 (The Gap): [现有研究局限]; [逻辑转折点]

[SECTION: METHODOLOGY/RESULTS]
Module X: [核心逻辑描述，必须包含 LaTeX 公式]; [关联图表: Fig X]

[SECTION: DISCUSSION]
Key Insight: [深度解释逻辑链条]
---END BLUEPRINT---
"""

PROMPT_COMPOSER = """
# Role
你是一位学术文稿合成专家。你的任务是根据 [LOGIC BLUEPRINT] 渲染出具有顶刊质感的论文正文。

# Strategy: Style Mimicry (风格复刻)
1. 模仿对象：若用户提供了参考文本，请深度分析其句式长短分布、动词偏好（主动vs被动）、连词习惯并进行复刻。
2. 语言约束：使用极其正式、中立、客观的学术语言。严禁使用 "amazing", "revolutionary" 等夸张词汇。
3. 结构约束：严格遵循蓝图顺序，每一段的第一句话必须是 Topic Sentence。不要添加蓝图中未提及的新论点。

# Technical Requirements
- 所有数学符号必须保持 LaTeX 格式。
- 预留参考文献占位符 [REF]。

# Execution
请参考用户上传的范文风格（如果有），将以下蓝图内容转化为高质量论文正文：
"""

PROMPT_REVIEWER = """
# Role
你是一位来自顶级会议/期刊的匿名审稿人（Reviewer #2），以严谨、挑剔和关注逻辑漏洞著称。

# Task: Reverse Thinking Check (反向思维检查)
请阅读下述文稿，从以下三个维度发起"攻击"并指出致命伤：
1. 证据链断裂：哪个核心论点（Core Claim）缺乏实验数据或逻辑推导的直接支撑？
2. 定义歧义：文中使用的 LaTeX 变量符号是否存在前后不一致、未定义即使用或解释不清的地方？
3. 傲慢检查：文中是否过度吹嘘（Overclaim）研究贡献？是否有缺乏根据的因果关联？

# Output Requirement
请列出 3-5 个逻辑漏洞，并针对每一个漏洞给出具体的"蓝图修改建议"（即：指导用户如何回到第一步去完善逻辑）。
"""

REFERENCE_STYLE_HEADER = "[REFERENCE STYLE TEXT]"
BLUEPRINT_HEADER = "[LOGIC BLUEPRINT]"
COMPOSED_TEXT_HEADER = "[COMPOSED TEXT]"
INSTRUCTIONS_HEADER = "[USER INSTRUCTIONS]"

# Sent when the user leaves the instructions blank.
DEFAULT_COMPOSER_INSTRUCTIONS = "Please compose the paper following the blueprint."
DEFAULT_REVIEWER_INSTRUCTIONS = "Please review this draft critically."


def build_system_prompt(step: WorkflowStep | int, reference_text: Optional[str] = None) -> str:
    step = WorkflowStep(step)
    if step is WorkflowStep.COMPOSER:
        if reference_text:
            return f"{REFERENCE_STYLE_HEADER}\n{reference_text}\n\n{PROMPT_COMPOSER}"
        return PROMPT_COMPOSER
    if step is WorkflowStep.REVIEWER:
        return PROMPT_REVIEWER
    return PROMPT_STRATEGIST


def build_user_message(
    step: WorkflowStep | int,
    user_input: str,
    blueprint: Optional[str] = None,
    composed_text: Optional[str] = None,
) -> str:
    """Step 1 passes input through; steps 2 and 3 wrap the prior output with labeled sections."""
    step = WorkflowStep(step)
    if step is WorkflowStep.COMPOSER:
        return f"{BLUEPRINT_HEADER}\n{blueprint or ''}\n\n{INSTRUCTIONS_HEADER}\n{user_input}"
    if step is WorkflowStep.REVIEWER:
        return f"{COMPOSED_TEXT_HEADER}\n{composed_text or ''}\n\n{INSTRUCTIONS_HEADER}\n{user_input}"
    return user_input


def build_prompts(request: GenerationRequest) -> tuple[str, str]:
    """(system prompt, user message) for a request."""
    return (
        build_system_prompt(request.step, request.reference_text),
        build_user_message(
            request.step, request.user_input, request.blueprint, request.composed_text
        ),
    )


def build_strategist_input(variable_table: str, outline: str) -> str:
    """Step-1 input from the variable definition table and the outline material."""
    return f"【变量定义表】\n{variable_table}\n\n【论文大纲/素材】\n{outline}"


def default_instructions(step: WorkflowStep | int, user_input: str) -> str:
    """Fill blank step-2/step-3 instructions with the stock request; step 1 is left as is."""
    if user_input.strip():
        return user_input
    step = WorkflowStep(step)
    if step is WorkflowStep.COMPOSER:
        return DEFAULT_COMPOSER_INSTRUCTIONS
    if step is WorkflowStep.REVIEWER:
        return DEFAULT_REVIEWER_INSTRUCTIONS
    return user_input
