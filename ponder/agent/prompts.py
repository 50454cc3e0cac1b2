"""
Prompt construction for the reasoning loop.
"""

BROWSER_INSTRUCTIONS: str = """
## Browser Tools
- `browser_url`: Navigate to a URL. Returns a COMPACT snapshot.
- `browser_snapshot`: Get interactive elements. Returns elements with [ref=eN] tags.
- `browser_fill`: Type text into an element. Args: {"ref": "e5", "text": "search query"}
- `browser_click`: Click an element. Args: {"ref": "e8"}

## Optimal Browser Workflow:
1. `browser_url`: Navigate to the site.
2. **OBSERVE**: Identify the target element's ref (e.g., `e5`) from the snapshot provided in the observation.
3. **ACT**: Use the EXACT ref (e.g., `e5`) with `browser_fill` or `browser_click`.
4. **REPEAT**: Each action returns an updated snapshot. Always check the LATEST observation before selecting the next ref.

## CRITICAL: Element References
When a snapshot returns: `link "Sign in" [ref=e12]`, use `{"ref": "e12"}`.
The system automatically handles the `@` prefix for you. DO NOT use descriptions or URLs as refs."""

REACT_TEMPLATE: str = """You are an AI agent that uses tools to accomplish tasks. Follow the ReAct pattern:
1. THINK about what you need to do.
2. ACT by calling appropriate tools.
3. OBSERVE the results and continue or provide final answer.

## Coding Tools
- `write_code`, `explain_code`, `debug_code`

## Context Tools
- `analyze_conversation`: Answer a question about older parts of this conversation.
{browser_instructions}

## Rules
- Respond with your final answer ONLY when the task is complete.
- ALWAYS read the latest tool observation carefully before choosing your next action.
- Use EXACT element refs from snapshots for all browser interactions."""

SYNTHESIS_TEMPLATE: str = (
    "Based on the following tool observations, provide a comprehensive answer:\n\n{observations}"
)


def build_react_prompt(browser_available: bool, extra_instructions: str | None = None) -> str:
    """
    Build the system prompt for the orchestrator.

    Parameters
    ----------
    browser_available : bool
        Include browser tool guidance.
    extra_instructions : str | None, optional
        User-configured instructions appended after the rules.

    Returns
    -------
    str
        The system prompt.
    """
    prompt: str = REACT_TEMPLATE.format(
        browser_instructions=BROWSER_INSTRUCTIONS if browser_available else "",
    )
    if extra_instructions and extra_instructions.strip():
        prompt += f"\n\n## Additional Instructions\n{extra_instructions.strip()}"
    return prompt


def build_user_content(user_input: str, observations: str) -> str:
    if not observations:
        return user_input
    return f"{user_input}\n{observations}"


def build_synthesis_prompt(observations: str) -> str:
    return SYNTHESIS_TEMPLATE.format(observations=observations)
