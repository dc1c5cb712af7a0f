from __future__ import annotations

import typing as t

QUESTION_COUNT = 25


def build_prompt(answers: t.Mapping[str, t.Any]) -> str:
    """Turn questionnaire answers into the instruction sent to Gemini.

    Expects ``yearsOfExperience``, ``currentCTC``, ``targetCompanies`` (a list)
    and ``timeCommitment`` to be present and non-empty.
    """
    companies = ", ".join(str(c) for c in answers["targetCompanies"])
    return (
        "Create a comprehensive SQL interview preparation plan for a data engineering role "
        "with these specifications:\n"
        f"- Experience Level: {answers['yearsOfExperience']} years\n"
        f"- Current Compensation: {answers['currentCTC']}\n"
        f"- Target Companies: {companies}\n"
        f"- Weekly Study Time: {answers['timeCommitment']}\n"
        "\n"
        f"Generate exactly {QUESTION_COUNT} SQL interview questions with this STRICT format for EACH question:\n"
        "Title: [Descriptive Title]\n"
        "Difficulty: [Easy/Medium/Hard]\n"
        "Concepts: [Comma-separated SQL concepts]\n"
        "Description: [Detailed problem description with context]"
    )
