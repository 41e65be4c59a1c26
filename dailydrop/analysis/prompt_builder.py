import datetime
from typing import List

from dailydrop.analysis.schemas import CompiledEntry
import dailydrop.analysis.prompts.analysis_prompt_templates as prompts


def _format_date(value) -> str:
    if isinstance(value, datetime.datetime):
        return value.strftime(prompts.ENTRY_DATE_FORMAT)
    return str(value)


def render_entry(entry: CompiledEntry, number: int) -> str:
    """Renders one entry as a numbered block: date, question, answer, then the conversation."""
    block = prompts.ENTRY_HEADER_TEMPLATE.format(number=number, date=_format_date(entry.created_at))
    block += prompts.ENTRY_QUESTION_TEMPLATE.format(question=entry.question_text)
    block += prompts.ENTRY_RESPONSE_TEMPLATE.format(text=entry.text)

    if entry.conversation:
        block += prompts.CONVERSATION_HEADER
        for message in entry.conversation:
            speaker = prompts.USER_SPEAKER if message.from_user else prompts.COACH_SPEAKER
            block += prompts.CONVERSATION_TURN_TEMPLATE.format(speaker=speaker, text=message.text)

    return block


def build_analysis_prompt(entries: List[CompiledEntry]) -> str:
    """
    Builds the single prompt sent to the generation service.

    Entries come first and the fixed output-format block last; ``parse_analysis_response``
    expects that format back.
    """
    compiled = prompts.ENTRY_SEPARATOR.join(
        render_entry(entry, index) for index, entry in enumerate(entries, start=1)
    )
    return (
        prompts.ANALYSIS_INTRO_TEMPLATE.format(entry_count=len(entries))
        + compiled
        + "\n\n"
        + prompts.OUTPUT_FORMAT_INSTRUCTIONS
    )
