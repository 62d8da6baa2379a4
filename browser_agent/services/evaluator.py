"""Evaluator: a second model call that judges a sub-agent's result."""

from pydantic import ValidationError

from browser_agent.models.agents import AgentCategory, EvaluationCriteria, EvaluationResult
from browser_agent.models.llm import Message
from browser_agent.services.chat import ChatPort
from browser_agent.utils.logging import get_logger

logger = get_logger(__name__)

_BASE_PROMPT = """You are an Evaluator Agent. Your job is to assess if an agent successfully completed its task.

Analyze the task description and the actual result, then provide evaluation in JSON format.

Response format (MUST be valid JSON):
{
  "success": true/false,
  "confidence": 0.0-1.0,
  "issues": ["issue1", "issue2"],
  "feedback": "specific feedback for improvement",
  "should_retry": true/false
}

Evaluation criteria:"""

_CATEGORY_CRITERIA = {
    AgentCategory.NAVIGATION: """
- Did the agent navigate to the requested URL?
- Are the required elements found and their selectors provided?
- Is the page structure information clear and actionable?
- If asked to find elements, are BOTH parent and child selectors provided?

SUCCESS if:
✓ Navigation completed or elements found
✓ Selectors are specific (e.g., ".class-name", not "button")
✓ Information is actionable for next agent

SHOULD_RETRY if:
✗ Selectors are too generic or missing
✗ No elements found when they should exist
✗ Page didn't load properly""",
    AgentCategory.EXTRACTION: """
- Was data actually extracted (not just "found" or "identified")?
- Are all requested fields present in the result?
- Is data structured and parseable?
- Are selectors included for interactive elements (checkboxes, buttons)?

SUCCESS if:
✓ Data is extracted with actual values
✓ All requested fields are present
✓ Format is structured (numbered list, table)
✓ Selectors provided for follow-up actions

SHOULD_RETRY if:
✗ No data extracted, only descriptions
✗ Missing requested fields
✗ Result says "couldn't find" or similar
✗ Used all iterations without success""",
    AgentCategory.FORM: """
- Were the requested form fields filled?
- Were buttons clicked as requested?
- Is there confirmation of success (page redirect, success message)?
- Are specific errors reported if something failed?

SUCCESS if:
✓ Form filled with provided data
✓ Actions completed (click, submit)
✓ Confirmation of result (redirect, message)

SHOULD_RETRY if:
✗ Form fields not found
✗ Click failed
✗ No confirmation of action""",
}

_GENERIC_CRITERIA = """
- Was the requested task completed?
- Is the result clear and actionable?
- Are there any obvious errors or failures?"""

_CLOSING = """

IMPORTANT:
- Be strict but fair
- Confidence should reflect certainty (1.0 = definitely successful, 0.0 = definitely failed)
- Only suggest retry if improvement is likely with feedback
- Provide specific, actionable feedback"""


class EvaluationParseError(ValueError):
    """The judge reply did not contain a decodable verdict."""


def build_evaluation_prompt(category: AgentCategory) -> str:
    """Build the judge system prompt for an agent category.

    Navigation, extraction and form agents get their own success and retry
    criteria; every other category gets the generic ones.
    """
    return _BASE_PROMPT + _CATEGORY_CRITERIA.get(category, _GENERIC_CRITERIA) + _CLOSING


def parse_evaluation_response(text: str) -> EvaluationResult:
    """Decode the verdict between the first ``{`` and the last ``}`` of ``text``.

    Raises:
        EvaluationParseError: If no JSON object is present or it does not validate
    """
    text = text.strip()
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise EvaluationParseError("no JSON found in response")

    try:
        return EvaluationResult.model_validate_json(text[start : end + 1])
    except ValidationError as e:
        raise EvaluationParseError(f"failed to parse JSON: {e}") from e


class Evaluator:
    """Judges sub-agent results with one blocking model call per evaluation."""

    def __init__(self, chat: ChatPort, temperature: float = 0.0):
        self.chat = chat
        self.temperature = temperature

    async def evaluate(self, criteria: EvaluationCriteria) -> EvaluationResult:
        """Evaluate ``criteria.actual_result`` against the task description.

        An unparseable judge reply yields the permissive fail-open verdict.

        Raises:
            ChatError: If the judge model cannot be reached
        """
        messages = [
            Message.system(build_evaluation_prompt(criteria.category)),
            Message.user(f"Task: {criteria.task_description}\n\nActual Result:\n{criteria.actual_result}"),
        ]

        response = await self.chat.chat(messages, None, temperature=self.temperature)

        try:
            result = parse_evaluation_response(response.content)
        except EvaluationParseError as e:
            logger.warning(f"Failed to parse evaluation response, assuming success: {e}")
            return EvaluationResult.fail_open()

        logger.info(
            f"Evaluation completed - success: {result.success}, confidence: {result.confidence}, "
            f"should_retry: {result.should_retry}, issues: {len(result.issues)}"
        )
        return result
