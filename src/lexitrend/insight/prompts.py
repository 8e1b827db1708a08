"""Prompt templates for the generation capability."""

from __future__ import annotations

from dataclasses import dataclass

from lexitrend.foundation.languages import DEFAULT_LANGUAGE, native_name

from .models import Source


@dataclass(frozen=True, slots=True)
class Prompt:
    system: str
    user: str


_BASIC: dict[str, Prompt] = {
    "zh": Prompt(
        system="你是一个专业的词汇分析师，专门帮助用户理解互联网热词、流行语和文化现象。你的回答必须是严格遵循所提供JSON Schema的JSON格式。",
        user='请分析关键词："{keyword}"',
    ),
    "en": Prompt(
        system="You are a professional vocabulary analyst specializing in internet slang and cultural phenomena. "
               "You must respond in a structured JSON format that strictly follows the provided JSON Schema.",
        user='Please analyze the keyword: "{keyword}"',
    ),
}

_ENHANCED: dict[str, Prompt] = {
    "zh": Prompt(
        system="你是一个专业的词汇分析师，专门帮助用户理解互联网热词、流行语和文化现象。你可以使用实时搜索工具来获取最新信息。"
               "当分析的关键词可能涉及以下情况时，请使用搜索工具：\n\n"
               "1. 最近的热点事件或趋势\n2. 新兴的网络流行语或梗\n3. 当前正在发生的社会现象\n"
               "4. 最新的科技术语或产品\n5. 近期的娱乐圈事件或人物\n\n请根据获取的信息提供准确、最新的分析。",
        user='请分析关键词："{keyword}"。如果这个关键词涉及最新信息或当前热点，请使用搜索工具获取实时信息。',
    ),
    "en": Prompt(
        system="You are a professional vocabulary analyst specializing in internet slang and cultural phenomena. "
               "You have access to real-time search tools. Use the search tool when analyzing keywords that might involve:\n\n"
               "1. Recent trending events or topics\n2. New internet slang or memes\n3. Current social phenomena\n"
               "4. Latest technology terms or products\n5. Recent entertainment industry events or figures\n\n"
               "Provide accurate, up-to-date analysis based on the retrieved information.",
        user='Please analyze the keyword: "{keyword}". If this keyword involves recent information or current trends, '
             "use the search tool to get real-time information.",
    ),
}


def _render(templates: dict[str, Prompt], keyword: str, language: str) -> Prompt:
    template = templates.get(language) or templates[DEFAULT_LANGUAGE]
    return Prompt(
        system=f"{template.system} Please respond in {native_name(language)}.",
        user=template.user.replace("{keyword}", keyword),
    )


def basic_prompt(keyword: str, language: str) -> Prompt:
    return _render(_BASIC, keyword, language)


def enhanced_prompt(keyword: str, language: str) -> Prompt:
    return _render(_ENHANCED, keyword, language)


def structuring_prompt(
    text: str,
    keyword: str,
    language: str,
    *,
    search_performed: bool,
    search_query: str | None = None,
    sources: list[Source] | None = None,
) -> Prompt:
    """Prompt turning free-text analysis plus search provenance into the structured schema."""
    lines = [
        f'Based on the following information, produce structured insight data for the keyword "{keyword}".',
        "",
        "Analysis text:",
        text,
        "",
        "Search information:",
        f"- Search performed: {'yes' if search_performed else 'no'}",
    ]
    if search_query:
        lines.append(f"- Search query: {search_query}")
    if sources:
        lines.append(f"- Number of sources: {len(sources)}")
    lines += [
        "",
        "Return definition, culturalContext, confidence, searchPerformed, "
        "searchQuery (if any) and sources (if any).",
    ]
    return Prompt(
        system=f"You are a data structuring expert. Produce structured keyword insight data from the analysis text. "
               f"Respond in {native_name(language)}.",
        user="\n".join(lines).strip(),
    )
