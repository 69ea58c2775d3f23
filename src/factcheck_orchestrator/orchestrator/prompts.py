# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Prompt templates.

Every evaluation prompt asks the model to answer with a ``Rating: <n>``
line (0-100) followed by an ``Explanation:`` line; aggregation depends on
that format.
"""

from __future__ import annotations

from dataclasses import dataclass

EVIDENCE_ANALYSIS = "Evidence Analysis"
LOGICAL_CONSISTENCY = "Logical Consistency"

_RESPONSE_FORMAT = """FORMAT YOUR RESPONSE WITH THESE HEADERS:
"Rating: [numerical score]"
"Explanation: [your concise explanation]"
"""

FACT_CHECK_TEMPLATE = """I need your help to fact-check the following statement. Please carefully analyze this for accuracy:

STATEMENT TO VERIFY: "{text}"
{reference_block}
TODAY'S DATE: {today}

Please follow this evaluation framework:

1. KEY CLAIMS IDENTIFICATION:
   - Identify the 2-3 main factual claims in the statement
   - For each claim, note if it's verifiable with available information

2. EVIDENCE EVALUATION:
   - Rate the strength of supporting evidence from references (Strong/Moderate/Weak/None)
   - Note contradictory evidence where applicable
   - Consider source credibility and recency

3. CONTEXTUAL ANALYSIS:
   - Note any missing context that affects interpretation
   - Identify if the statement misleads through selective presentation

4. VERDICT:
   - Assign a numerical accuracy score (0-100):
     * 90-100: Completely or almost completely accurate
     * 70-89: Mostly accurate with minor issues
     * 50-69: Mixed accuracy with significant issues
     * 30-49: Mostly inaccurate with some truth
     * 0-29: Completely or almost completely false
   - Provide a concise explanation for your rating

5. LIMITATIONS:
   - Note any limitations in your assessment due to incomplete information

""" + _RESPONSE_FORMAT

EVIDENCE_TEMPLATE = """Based strictly on the provided search context, evaluate the factual claims in: "{text}".
List each claim and assess whether the search results support, contradict, or are silent on each claim.
Provide a numeric accuracy rating from 0-100 and brief explanation.

""" + _RESPONSE_FORMAT + """
Search Context:
{context}
"""

KNOWLEDGE_TEMPLATE = """Analyze the factual claims in: "{text}".
Based on your knowledge, evaluate how accurate these claims are likely to be.
Provide a numeric accuracy rating from 0-100 and brief explanation.

""" + _RESPONSE_FORMAT

CONSISTENCY_TEMPLATE = """Analyze the internal logical consistency of the following statement: "{text}".
Identify if there are any contradictions or logical fallacies.
Provide a numeric consistency rating from 0-100 and brief explanation.

""" + _RESPONSE_FORMAT

CLAIM_EXTRACTION_TEMPLATE = """Extract the 2-3 most important factual claims from this text.
Focus on specific, verifiable statements rather than opinions.
Return ONLY the claims, separated by semicolons, with no additional text:

"{text}"
"""

EMERGENCY_TEMPLATE = """Please fact-check the following statement and rate its accuracy from 0-100:
"{text}"

""" + _RESPONSE_FORMAT


QUICK_CHECK_TEMPLATE = """Please quickly assess if the following statement is likely true or false:
"{text}"

Provide a brief response with:
- Rating (0-100)
- Short explanation (1-2 sentences)
- Confidence level (0.0-1.0)

Format:
Rating: [number]
Explanation: [text]
Confidence: [number]
"""

QUICK_CHECK_INPUT_CHARS = 1000

@dataclass(frozen=True)
class EvaluationPrompt:
    """One named prompt in a multi-model evaluation."""

    name: str
    prompt: str


def build_fact_check_prompt(text: str, context: str, today: str) -> str:
    """Single-model prompt, with reference information when available."""
    reference_block = (
        f"\nREFERENCE INFORMATION:\n{context}\n" if context.strip() else ""
    )
    return FACT_CHECK_TEMPLATE.format(
        text=text, reference_block=reference_block, today=today
    )


def build_evidence_prompt(text: str, context: str) -> EvaluationPrompt:
    """Primary multi-model prompt; falls back to model knowledge without evidence."""
    if context.strip():
        prompt = EVIDENCE_TEMPLATE.format(text=text, context=context)
    else:
        prompt = KNOWLEDGE_TEMPLATE.format(text=text)
    return EvaluationPrompt(EVIDENCE_ANALYSIS, prompt)


def build_consistency_prompt(text: str) -> EvaluationPrompt:
    return EvaluationPrompt(LOGICAL_CONSISTENCY, CONSISTENCY_TEMPLATE.format(text=text))


def build_claim_extraction_prompt(text: str) -> str:
    return CLAIM_EXTRACTION_TEMPLATE.format(text=text)


def build_emergency_prompt(text: str) -> str:
    return EMERGENCY_TEMPLATE.format(text=text)


def build_quick_check_prompt(text: str) -> str:
    """Short self-rated assessment used by progressive checks."""
    return QUICK_CHECK_TEMPLATE.format(text=text[:QUICK_CHECK_INPUT_CHARS])


__all__ = [
    "EVIDENCE_ANALYSIS",
    "LOGICAL_CONSISTENCY",
    "QUICK_CHECK_INPUT_CHARS",
    "EvaluationPrompt",
    "build_claim_extraction_prompt",
    "build_consistency_prompt",
    "build_emergency_prompt",
    "build_evidence_prompt",
    "build_fact_check_prompt",
    "build_quick_check_prompt",
]
