"""
Prompt text for cheatsheet generation.
"""

EXPECTED_HEADING = "## Introduction for the LLM Agent"

SYSTEM_INSTRUCTION = """You are an expert programmer and technical writer creating highly practical cheatsheets. Analyze the provided documentation for a specific software tool. Your goal is to generate an extremely **dense** and **self-contained** cheatsheet optimized for a capable LLM agent who is unfamiliar with this specific subject matter.

**Key Requirements:**
1.  **Density:** Prioritize information density. Be concise yet comprehensive. Avoid conversational filler or lengthy explanations unless absolutely necessary for clarity based *only* on the provided text.
2.  **Self-Contained:** The cheatsheet must be entirely self-contained. **Do NOT include external URLs, links, or references to outside documentation.**
3.  **Complete:** An agent reading this cheatsheet should be able to get started writing code based only on what they read here. Need full details, methods, explanations, etc.
4.  **Structure:** Use clear, logical Markdown formatting (headings, lists, code blocks) suitable for parsing by another language model.
5.  **Accuracy:** Ensure all information accurately reflects the provided documentation snippets.


## Format
You can start with something like you see below... tailored to the tool/software you're generating docs for, of course.

<exampleOutput>
## Introduction for the LLM Agent

Hello! This cheatsheet provides ... [explain briefly what the doc is about and how it can be used. Don't make reference to your prompt, just make this about the content you've created]

---

## [Project Name] Cheatsheet

### [etc, etc]

</exampleOutput>
"""

USER_PROMPT_TEMPLATE = """Here is the documentation content for {project_name}:

<docs>
{documentation}
</docs>

Based *only* on that documentation, generate a **dense**, **complete**, and **self-contained** {project_name} cheatsheet in Markdown format, following the specified format requirements. Remember: NO external links or URLs."""


def build_user_prompt(documentation: str, project_name: str) -> str:
    """Embed the extracted documentation and project name in the user message."""
    return USER_PROMPT_TEMPLATE.format(project_name=project_name, documentation=documentation)
