"""
AI study flows: quizzes, explanations, tutoring, doubt solving, NCERT
highlights, smart notes, study rooms, syllabus facts and daily challenges.
"""

from .prompt_flow import PromptFlow
from .flow_models import (
    QuizGeneratorInput, QuizGeneratorOutput, QuizQuestion,
    QuizExplanationInput, QuizExplanationOutput,
    StudyAssistantInput, StudyAssistantOutput,
    DoubtResolverInput, DoubtResolverOutput,
    NcertHighlightsInput, NcertHighlightsOutput,
    SmartNotesInput, SmartNotesOutput,
    StudyRoomInput, StudyRoomOutput,
    SyllabusFactInput, SyllabusFactOutput,
    DailyChallengeInput, DailyChallengeOutput,
)

OPTION_LABELS = ["A", "B", "C", "D"]


def build_explanation_prompt(question: QuizQuestion) -> str:
    """Self-contained prompt a student can send to the explanation flow"""
    lines = [f"Question: {question.questionText}", "Options:"]
    for label, option in zip(OPTION_LABELS, question.options):
        lines.append(f"{label}) {option}")
    correct = question.options[question.correctOptionIndex]
    lines.append(f"Correct Answer: {OPTION_LABELS[question.correctOptionIndex]}) {correct}")
    lines.append(
        "Explain why this is the correct answer and why the other options are incorrect "
        "for a NEET aspirant, covering relevant concepts."
    )
    return "\n".join(lines)


# ===================================================================================
# QUIZ GENERATION
# ===================================================================================

def _quiz_prompt(data: QuizGeneratorInput) -> str:
    return f"""You are an expert NEET (Indian medical entrance exam) question setter.
Generate a quiz with {data.numQuestions} multiple-choice questions on the topic "{data.topic}" with "{data.difficulty}" difficulty.
The topic string might include subject, class level, chapter, sub-topics and the desired question source (NCERT, PYQ, Mixed). Use all of it.
'hard' questions must test deep conceptual understanding and application. 'easy' questions focus on fundamentals and definitions. 'medium' sits between.
Avoid repeating the same concept or question structure within this quiz.

Each question must follow the NEET pattern:
- Clear and unambiguous question text.
- Exactly 4 plausible options.
- One single correct answer, given as the 0-based correctOptionIndex.
- An explanationPrompt containing the full question, the four options labelled A) to D), a line "Correct Answer: <label>) <option>" and the directive "Explain why this is the correct answer and why the other options are incorrect, suitable for a NEET aspirant. Cover relevant concepts."
"""


def _quiz_fallback(data: QuizGeneratorInput) -> QuizGeneratorOutput:
    questions = []
    for i in range(data.numQuestions):
        question = QuizQuestion(
            questionText=f"What is the capital of France? (Fallback {i + 1})",
            options=["Berlin", "Madrid", "Paris", "Rome"],
            correctOptionIndex=2,
        )
        question.explanationPrompt = build_explanation_prompt(question)
        questions.append(question)
    return QuizGeneratorOutput(questions=questions)


def _quiz_too_short(data: QuizGeneratorInput, output: QuizGeneratorOutput) -> bool:
    return len(output.questions) < data.numQuestions


def _quiz_normalize(data: QuizGeneratorInput, output: QuizGeneratorOutput) -> QuizGeneratorOutput:
    questions = output.questions[:data.numQuestions]
    for question in questions:
        if not question.explanationPrompt:
            question.explanationPrompt = build_explanation_prompt(question)
    return QuizGeneratorOutput(questions=questions)


quiz_generator_flow = PromptFlow(
    name="generateQuiz",
    input_model=QuizGeneratorInput,
    output_model=QuizGeneratorOutput,
    template=_quiz_prompt,
    fallback=_quiz_fallback,
    is_empty=_quiz_too_short,
    postprocess=_quiz_normalize,
)


def _explanation_prompt(data: QuizExplanationInput) -> str:
    return f"""You are an expert NEET tutor. A student answered a quiz question on "{data.topic}".

Question: {data.question}
Correct answer: {data.answer}
Student's answer: {data.studentAnswer}

Explain the correct answer step by step. If the student's answer is wrong, explain the misconception behind it."""


quiz_explanation_flow = PromptFlow(
    name="customizableQuizExplanation",
    input_model=QuizExplanationInput,
    output_model=QuizExplanationOutput,
    template=_explanation_prompt,
    fallback=QuizExplanationOutput(
        explanation="Sorry, an explanation could not be generated right now. Please review the related NCERT section and try again."
    ),
)


# ===================================================================================
# TUTORING
# ===================================================================================

def _assistant_prompt(data: StudyAssistantInput) -> str:
    prompt = f"""You are an AI study assistant for NEET aspirants. Answer the student's question accurately and concisely.

Question: {data.query}"""
    if data.context:
        prompt += f"\nContext: {data.context}"
    if data.studyTipsPreferences:
        prompt += f"\nAlso give study tips matching these preferences: {data.studyTipsPreferences}"
    return prompt


study_assistant_flow = PromptFlow(
    name="aiStudyAssistant",
    input_model=StudyAssistantInput,
    output_model=StudyAssistantOutput,
    template=_assistant_prompt,
    fallback=StudyAssistantOutput(
        answer="Sorry, I could not answer that right now. Please rephrase your question or try again later."
    ),
)


def _doubt_prompt(data: DoubtResolverInput) -> str:
    prompt = """You are an expert NEET tutor. The attached image contains a question a student is stuck on.
Read the question from the image into questionText, then give a clear step-by-step explanation of the solution.
If it comes from a known source (NCERT chapter, past paper), mention it in sourceReference."""
    if data.subjectContext:
        prompt += f"\nSubject context: {data.subjectContext}"
    return prompt


doubt_resolver_flow = PromptFlow(
    name="smartDoubtResolver",
    input_model=DoubtResolverInput,
    output_model=DoubtResolverOutput,
    template=_doubt_prompt,
    fallback=DoubtResolverOutput(
        questionText="Could not interpret the image.",
        explanation="Sorry, I was unable to process the question from the image. Please ensure the image is clear and try again.",
    ),
    image_field="questionImage",
)


def _highlights_prompt(data: NcertHighlightsInput) -> str:
    prompt = f"""You are a NEET expert reading an NCERT chapter.
Summarize the chapter, list the key diagrams, the likely exam questions and the important lines worth memorizing.

Chapter text:
\"\"\"
{data.chapterText}
\"\"\""""
    if data.query:
        prompt += f"\nFocus on this request from the student: {data.query}"
    return prompt


ncert_highlights_flow = PromptFlow(
    name="ncertExplorerHighlights",
    input_model=NcertHighlightsInput,
    output_model=NcertHighlightsOutput,
    template=_highlights_prompt,
    fallback=NcertHighlightsOutput(
        summary="Highlights could not be generated for this chapter right now. Please try again."
    ),
)


def _notes_prompt(data: SmartNotesInput) -> str:
    prompt = f"""You are an expert AI assistant for NEET aspirants. Generate "smart notes" from the provided content.

Content Type: "{data.contentType}"
"""
    if data.subject:
        prompt += f'Subject: "{data.subject}"\n'
    prompt += f"""
Provided Content:
\"\"\"
{data.content}
\"\"\"
"""
    if data.noteFormatPreferences:
        prompt += f"\nThe student prefers these formats where applicable: {', '.join(data.noteFormatPreferences)}.\n"
    prompt += """
1. Summarize the most critical information.
2. For Physics or Chemistry list key formulas, equations or reactions. For Biology list key terms, pathways and processes.
3. Suggest mnemonics where they help.
Suggest a short title in titleSuggestion."""
    return prompt


smart_notes_flow = PromptFlow(
    name="smartNotesGenerator",
    input_model=SmartNotesInput,
    output_model=SmartNotesOutput,
    template=_notes_prompt,
    fallback=SmartNotesOutput(
        notes="Could not generate notes from the provided content. Please ensure the content is sufficient and clear.",
        titleSuggestion="Note Generation Error",
    ),
    is_empty=lambda data, output: not output.notes.strip(),
)


def _study_room_prompt(data: StudyRoomInput) -> str:
    prompt = f"""You are an AI moderator for a NEET study room.
If the student's input is a question, answer it concisely in clarificationOrAnswer.
Ask a quiz question only when it fits the discussion. Suggest how long to spend on the activity and what to study next.

Current Activity: {data.currentActivity or 'None'}
Student's Latest Input: "{data.studentQuestion}"
Main Topic of the Room: {data.topic}"""
    if data.chapter:
        prompt += f"\nSpecific Chapter: {data.chapter}"
    return prompt


study_room_flow = PromptFlow(
    name="moderateStudyRoom",
    input_model=StudyRoomInput,
    output_model=StudyRoomOutput,
    template=_study_room_prompt,
    fallback=StudyRoomOutput(
        timeSuggestion="Spend 25 focused minutes on this topic, then take a 5 minute break."
    ),
)


# ===================================================================================
# DAILY CONTENT
# ===================================================================================

def _fact_prompt(data: SyllabusFactInput) -> str:
    subject = data.subject or "any NEET subject"
    return f"""Share one surprising, accurate fact from the class {data.class_level} NEET syllabus for {subject}.
Keep it to two sentences and add a short source_hint naming the chapter or concept."""


syllabus_fact_flow = PromptFlow(
    name="randomFactGenerator",
    input_model=SyllabusFactInput,
    output_model=SyllabusFactOutput,
    template=_fact_prompt,
    fallback=SyllabusFactOutput(
        fact="Did you know? Consistent revision is one of the most effective strategies for success in competitive exams like NEET. Keep reviewing what you've learned!",
        source_hint="General Study Tip",
    ),
    is_empty=lambda data, output: not output.fact.strip(),
)


def _challenge_prompt(data: DailyChallengeInput) -> str:
    prompt = "Create one short daily study challenge for a NEET aspirant that can be finished in under 30 minutes."
    if data.studentFocusArea:
        prompt += f"\nThe student is focusing on: {data.studentFocusArea}"
    if data.difficultyPreference:
        prompt += f"\nPreferred difficulty: {data.difficultyPreference}"
    return prompt


daily_challenge_flow = PromptFlow(
    name="dailyChallenge",
    input_model=DailyChallengeInput,
    output_model=DailyChallengeOutput,
    template=_challenge_prompt,
    fallback=DailyChallengeOutput(
        challengeTitle="Topic Teaser",
        challengeDescription="Pick one challenging topic from today's study plan and explain it to an imaginary student in 5 bullet points.",
        subjectHint="General Study Skill",
    ),
)


async def generate_quiz(payload, client=None) -> QuizGeneratorOutput:
    return await quiz_generator_flow.run(payload, client)

async def explain_quiz_question(payload, client=None) -> QuizExplanationOutput:
    return await quiz_explanation_flow.run(payload, client)

async def ask_study_assistant(payload, client=None) -> StudyAssistantOutput:
    return await study_assistant_flow.run(payload, client)

async def resolve_doubt(payload, client=None) -> DoubtResolverOutput:
    return await doubt_resolver_flow.run(payload, client)

async def get_highlights(payload, client=None) -> NcertHighlightsOutput:
    return await ncert_highlights_flow.run(payload, client)

async def generate_smart_notes(payload, client=None) -> SmartNotesOutput:
    return await smart_notes_flow.run(payload, client)

async def moderate_study_room(payload, client=None) -> StudyRoomOutput:
    return await study_room_flow.run(payload, client)

async def generate_syllabus_fact(payload, client=None) -> SyllabusFactOutput:
    return await syllabus_fact_flow.run(payload, client)

async def generate_daily_challenge(payload, client=None) -> DailyChallengeOutput:
    return await daily_challenge_flow.run(payload, client)
