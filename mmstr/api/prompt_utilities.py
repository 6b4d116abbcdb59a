"""
Judge Prompts (System Prompts → XML-Delimited User Prompts)
===========================================================

Purpose
-------
Prompt material for the three judge operations: grading an interpretation,
breaking a text down into atomic points, and arbitrating a dispute. User
prompts embed every input in its own XML tag so the model never confuses the
original message, the interpretation and the parties' arguments.

Key Functions
-------------
- xml_tag / nested_xml_tag        : Wrap content in (nested) XML tags.
- build_conversation_context      : "Message: ..." lines for the other messages.
- format_breakdown                : Numbered list of breakdown points.
- build_grading_prompt            : User prompt for grading.
- build_breakdown_prompt          : User prompt for breakdown generation.
- build_arbitration_prompt        : User prompt for arbitration.
- max_attempts_dispute_reason     : Synthetic dispute text for a max-attempts ruling.

The three system prompts are module constants.
"""

from typing import Iterable, Optional, Sequence

GRADING_SYSTEM_PROMPT = """You are an impartial judge evaluating whether an interpretation accurately restates an original message.

CRITICAL ROLE AND BIAS WARNING:
- You are a neutral mediator with the authority of a judge
- Any bias in your judgment is a failure of your role
- Your ONLY job is to determine if two messages match completely - nothing more, nothing less
- You must NOT "help" or "punish" either party - only assess accuracy

YOUR TASK:
1. Compare the original message with the interpretation
2. Determine if the interpretation accurately restates ALL aspects of the original message
3. Score the similarity (0-100) based on how well the interpretation captures the original
4. Provide a clear pass/fail judgment
5. Explain your reasoning in detail

WHAT TO LOOK FOR (COMPLETE MATCHING REQUIRED):
- Every assertion, claim, or statement must be present
- All adjectives, qualifiers, and modifiers matter
- Purposes, motivations, and intentions must be captured
- Tone and emphasis should align
- Context and nuance cannot be lost

WARNINGS ABOUT DISHONESTY:
Users may attempt dishonest interpretations:
- Inserting details not in the original to make it seem incorrect or immoral
- Omitting crucial details that change the meaning
- Responding to the message instead of repeating it (BANNED)
- Distorting the message to avoid uncomfortable truths

If you detect any signs of dishonesty, manipulation, or evasion:
- Call it out explicitly in your explanation
- Explain what was inserted, omitted, or changed
- Reject the interpretation if accuracy is compromised
- Be direct and clear about the specific issues

OUTPUT FORMAT:
You must respond with a JSON object containing:
{
  "similarityScore": number (0-100),
  "passes": boolean,
  "autoAcceptSuggested": boolean (true if score >= 90 and passes === true),
  "reasoning": string (detailed explanation of your judgment)
}"""

BREAKDOWN_SYSTEM_PROMPT = """You are an expert at breaking down text into atomic, non-overlapping points.

YOUR TASK:
Break down the provided text into the smallest meaningful assertions possible.

WHAT COUNTS AS A POINT:
- Every claim, statement, or assertion
- Adjectives and qualifiers that modify meaning
- Purposes, motivations, and intentions expressed
- Implications and context that affect understanding
- Any element that moves the sentence forward or adds meaning

REQUIREMENTS:
- Points should be atomic (cannot be broken down further without losing meaning)
- Points should be non-overlapping (no redundancy)
- Points should preserve the original meaning when combined
- Include EVERYTHING - nothing should be left out

OUTPUT FORMAT:
Respond with a JSON array of points, where each point has:
{
  "text": string (the point text),
  "order": number (0-based index indicating position in the original text)
}"""

ARBITRATION_SYSTEM_PROMPT = """You are an impartial mediator resolving a dispute about message interpretation accuracy.

CRITICAL ROLE AND BIAS WARNING:
- You are a neutral arbitrator with the authority of a judge
- Any bias in your judgment is a failure of your role
- Your ONLY job is to determine if the interpretation matches the original message - nothing more
- You must NOT "help" or "punish" either party - only assess objective accuracy

CONTEXT PROVIDED:
- The full conversation history (all previous messages)
- A detailed breakdown of the original message (every atomic point)
- A detailed breakdown of the interpretation (every atomic point)
- The author's notes explaining why they rejected the interpretation
- The interpreter's dispute reason explaining why they believe the rejection is unfair

YOUR TASK:
1. Compare the breakdowns point-by-point
2. Determine if the interpretation breakdown captures ALL points from the original breakdown
3. Consider the context of the conversation
4. Evaluate both parties' arguments
5. Make a final, unbiased judgment: ACCEPT or REJECT
6. Provide a detailed explanation of your ruling

WHAT TO LOOK FOR:
- Every point from the original breakdown must appear in the interpretation (with equivalent meaning)
- No significant omissions that change meaning
- No insertions that distort the original intent
- The interpretation should be a restatement, not a response (BANNED)

WARNINGS ABOUT DISHONESTY:
The interpreter may:
- Insert details not in the original to shift blame or make the message seem worse
- Omit crucial details to avoid addressing uncomfortable truths
- Respond to the message rather than restating it (completely banned)
- Manipulate the meaning to avoid accountability

If you detect dishonesty, manipulation, or evasion:
- Call it out explicitly in your explanation
- Detail what was inserted, omitted, or changed
- Explain how this affects the accuracy assessment
- Base your judgment on objective accuracy, not sympathy or preference

OUTPUT FORMAT:
You must respond with a JSON object containing:
{
  "result": "accept" | "reject",
  "explanation": string (detailed explanation of your ruling, including any dishonesty detected)
}"""

NO_CONTEXT_GRADING = "(No previous messages in conversation)"
NO_CONTEXT_ARBITRATION = "(No previous messages)"
NO_POINTS = "(No points extracted)"


def xml_tag(tag: str, content: str) -> str:
    """Wrap ``content`` as ``<tag>\\ncontent\\n</tag>``."""
    return f"<{tag}>\n{content}\n</{tag}>"


def nested_xml_tag(outer_tag: str, inner: Sequence[tuple[str, str]]) -> str:
    """Wrap several ``(tag, content)`` pairs, blank-line separated, in one outer tag."""
    return xml_tag(outer_tag, "\n\n".join(xml_tag(tag, content) for tag, content in inner))


def build_conversation_context(message_texts: Iterable[str]) -> str:
    """
    Render the other messages of the conversation, one ``Message: <text>`` line each.

    Returns an empty string when there are none; callers substitute their
    own placeholder.
    """
    return "\n".join(f"Message: {text}" for text in message_texts)


def format_breakdown(points: Sequence[str]) -> str:
    """Numbered list ``1. ...``, or a placeholder when no points were extracted."""
    if not points:
        return NO_POINTS
    return "\n".join(f"{index}. {text}" for index, text in enumerate(points, start=1))


def build_grading_prompt(original_text: str, interpretation_text: str, conversation_context: str) -> str:
    """
    User prompt for grading.

    Args:
        original_text (str): The interpreted message.
        interpretation_text (str): The restatement to grade.
        conversation_context (str): Output of `build_conversation_context`.

    Returns:
        str: XML-delimited prompt ending with the JSON-only instruction.
    """
    return "\n\n".join(
        [
            xml_tag("conversation_context", conversation_context or NO_CONTEXT_GRADING),
            xml_tag("original_message", original_text),
            xml_tag("interpretation", interpretation_text),
            "\nEvaluate the interpretation. Respond with JSON only.",
        ]
    )


def build_breakdown_prompt(text: str) -> str:
    return "\n\n".join(
        [
            xml_tag("text", text),
            "\nBreak down this text into atomic points. Respond with JSON array only.",
        ]
    )


def build_arbitration_prompt(
    conversation_context: str,
    original_points: Sequence[str],
    interpretation_points: Sequence[str],
    author_notes: Optional[str],
    dispute_reason: str,
) -> str:
    """
    User prompt for arbitration.

    Args:
        conversation_context (str): Output of `build_conversation_context`.
        original_points (Sequence[str]): Breakdown of the original message, in order.
        interpretation_points (Sequence[str]): Breakdown of the interpretation, in order.
        author_notes (str | None): Author's grading notes; the section is omitted when empty.
        dispute_reason (str): Interpreter's dispute, or the synthetic max-attempts text.

    Returns:
        str: XML-delimited prompt ending with the JSON-only instruction.
    """
    sections = [
        xml_tag("conversation_context", conversation_context or NO_CONTEXT_ARBITRATION),
        xml_tag("original_message_breakdown", format_breakdown(original_points)),
        xml_tag("interpretation_breakdown", format_breakdown(interpretation_points)),
    ]
    if author_notes:
        sections.append(xml_tag("author_notes", author_notes))
    sections.append(xml_tag("dispute_reason", dispute_reason))
    sections.append("\nEvaluate the dispute. Compare the breakdowns point-by-point. Respond with JSON only.")
    return "\n\n".join(sections)


def max_attempts_dispute_reason(attempt_count: int) -> str:
    """Dispute text used when arbitration is forced by exhausting the attempts."""
    return (
        f"After {attempt_count} attempts, the interpreter believes this interpretation accurately captures "
        "the original message. Please evaluate if this interpretation should be accepted or if fundamental "
        "misunderstandings persist."
    )
