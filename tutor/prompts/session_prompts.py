"""
Learning Session Prompts

Templates for question generation, answer scoring, conversational replies
and level-adjusted rewriting.
"""

from tutor.prompts.templates import PromptTemplate


KIND_INSTRUCTIONS = {
    "practice": "Write practice questions that let the learner apply what they studied. Vary the format.",
    "quiz": "Write quiz questions that check understanding of the key points. Each must have one clear answer.",
    "review": "Write review questions that revisit the most important ideas and help them stick.",
    "feedback": "Write reflective questions that help the learner assess their own understanding.",
}

LEVEL_INSTRUCTIONS = {
    "beginner": (
        "Use plain words and short sentences. Explain any technical term you use. "
        "Prefer concrete, everyday examples."
    ),
    "intermediate": (
        "Use the subject's standard vocabulary with brief reminders of meaning. "
        "Connect ideas to related concepts."
    ),
    "advanced": (
        "Be concise and precise. Assume familiarity with the fundamentals and "
        "point towards deeper or edge-case considerations."
    ),
}


QUESTION_GENERATION_PROMPT = PromptTemplate(
    """You are an experienced tutor preparing questions for a learner.

Module: {module_title}
Description: {module_description}

Learning objectives:
{learning_objectives}

Module content:
{module_content}

Session kind: {session_kind}
{kind_instructions}

Target difficulty: {difficulty}

Write exactly {count} questions. For each question give:
- "question": the question text
- "expected_answer": a concise reference answer
- "hint": a short hint that guides without revealing the answer
- "explanation": why the answer is correct
- "difficulty": one of beginner, intermediate, advanced
- "category": a short topic label

Return JSON: {{"questions": [...]}}""",
    name="question_generation",
)


ANSWER_EVALUATION_PROMPT = PromptTemplate(
    """You are grading a learner's free-form answer.

Question: {question}
Reference answer: {expected_answer}
Explanation: {explanation}

Learner's answer: {user_answer}

Judge whether the answer captures the essential idea of the reference
answer. Wording does not need to match. Give a score from 0 to 100.

Return JSON with:
- "is_correct": true or false
- "score": integer 0-100
- "feedback": encouraging, specific feedback addressed to the learner
- "correct_answer": the correct answer in one or two sentences
- "explanation": why that answer is correct
- "further_study_tips": one practical suggestion for what to study next""",
    name="answer_evaluation",
)


CONVERSATIONAL_REPLY_PROMPT = PromptTemplate(
    """You are a friendly tutor chatting with a learner about "{module_title}".

Module description: {module_description}
Learning objectives:
{learning_objectives}

Learner profile: {profile_hint}

Recent conversation:
{transcript}

Reply to the learner's last message. Stay on the module's topic, keep it
brief, and end with a question or suggestion that moves their learning forward.
Reply in plain text.""",
    name="conversational_reply",
)


LEVEL_ADJUSTMENT_PROMPT = PromptTemplate(
    """Rewrite the following tutor message for a {tier} learner.

{level_instructions}

Keep every fact and the overall structure. Do not add new content.
Return only the rewritten message.

Message:
{text}""",
    name="level_adjustment",
)
