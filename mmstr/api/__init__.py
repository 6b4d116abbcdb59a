"""
API Package — FastAPI Router • Models • LLM Judge • Prompts • Retry Utils
=========================================================================

Mission
-------
This package defines the service's HTTP interface and the only component that
talks to the language model. The router translates requests into calls on
`mmstr.database.core` and maps domain errors onto status codes; the judge turns
grading, breakdown and arbitration requests into validated, typed judgments.

Contents
--------
- fast_api
    FastAPI router with endpoints for:
      • Conversations: create, update, list, participants
      • Messages: post (reply eligibility enforced), list, replies
      • Interpretations: submit (auto-graded), re-grade, list attempts
      • Gradings: author decision, dispute, arbitration retry
      • Read models: flow state and response eligibility per user
      • Validation: stateless check of a draft text

- models
    Pydantic data contracts for request/response validation:
      • ConversationCreationDetails, UpdateConversationDetails, ParticipantDetails
      • NewMessage, NewInterpretation, GradingDecision, DisputeDetails, TextToValidate
      • Response shapes (Conversation, Message, Interpretation, Grading,
        GradingResponse, Arbitration, InterpretationFlowState, Eligibility, ...)

- llm_judge
    The `Judge` protocol and its LangChain/OpenAI implementation:
      • grade(original, interpretation, context) -> GradingJudgment
      • breakdown(text) -> list[BreakdownPoint]
      • arbitrate(context, original_points, interpretation_points, notes, reason) -> ArbitrationJudgment
      • build_judge(): ChatOpenAI from settings, attached to `app.state.judge` at startup

- prompt_utilities
    System prompts and XML-delimited user prompts for the three judge operations.

- utils
    • execute_with_timeout_and_retry: one overall deadline, exponential backoff,
      transient-only retries
    • classify_error: OpenAI/LangChain exceptions → AI error taxonomy
    • parse_llm_json: fence stripping + `json_repair` fallback

Operational Notes
-----------------
- Judge calls are synchronous; endpoints that make them are plain ``def`` and
  run in FastAPI's threadpool.
- Judge logging never includes full message texts, only lengths and scores.
"""
