from .prompt_flow import PromptFlow
from .flow_models import (
    MentalHealthInput, MentalHealthOutput,
    MeditationInput, MeditationOutput,
    DailyMotivationInput, DailyMotivationOutput,
)


def _mental_health_prompt(data: MentalHealthInput) -> str:
    return f"""You are an AI mental health assistant for students. Based on the student's current mood and focus level, give personalized suggestions to improve their wellbeing and focus.

Mood: {data.mood}
Focus Level: {data.focusLevel} (1 = very distracted, 10 = fully focused)

Suggestions should include specific actions related to rest, breathing exercises or motivational thoughts. Give at least three distinct suggestions."""


mental_health_flow = PromptFlow(
    name="mentalHealthTracker",
    input_model=MentalHealthInput,
    output_model=MentalHealthOutput,
    template=_mental_health_prompt,
    fallback=MentalHealthOutput(suggestions=[
        "Take a 5 minute break away from your desk and stretch.",
        "Try box breathing: inhale for 4 seconds, hold for 4, exhale for 4, hold for 4.",
        "Remind yourself of one thing you have already mastered this week.",
    ]),
    is_empty=lambda data, output: not output.suggestions,
)


def _meditation_prompt(data: MeditationInput) -> str:
    focus = data.focusArea or "general_wellbeing"
    return f"""You are a calm meditation mentor for NEET aspirants.
Write a guided meditation script that takes about {data.durationPreference} to read slowly.
The student's stress level is {data.stressLevel} out of 10. Focus area: {focus}.
Use short sentences and include pauses marked as "(pause)". Give the session a short title."""


meditation_flow = PromptFlow(
    name="meditationMentor",
    input_model=MeditationInput,
    output_model=MeditationOutput,
    template=_meditation_prompt,
    fallback=MeditationOutput(
        title="Default Calming Meditation",
        script=(
            "Find a comfortable position and gently close your eyes. (pause) "
            "Breathe in slowly through your nose for four counts. (pause) "
            "Hold for a moment, then breathe out through your mouth for six counts. (pause) "
            "Let your shoulders relax with every breath. (pause) "
            "When you are ready, open your eyes and return to your studies with a clear mind."
        ),
    ),
    is_empty=lambda data, output: not output.script.strip(),
)


def _motivation_prompt(data: DailyMotivationInput) -> str:
    prompt = "Write one short, original motivational quote for a NEET aspirant."
    if data.studentName:
        prompt += f" Address the student by name: {data.studentName}."
    if data.currentFocusArea:
        prompt += f" They are currently studying {data.currentFocusArea}."
    return prompt


daily_motivation_flow = PromptFlow(
    name="dailyMotivation",
    input_model=DailyMotivationInput,
    output_model=DailyMotivationOutput,
    template=_motivation_prompt,
    fallback=DailyMotivationOutput(
        quote="Believe in your preparation and stay focused. Success is built on consistent effort."
    ),
    is_empty=lambda data, output: not output.quote.strip(),
)


async def get_suggestions(payload, client=None) -> MentalHealthOutput:
    return await mental_health_flow.run(payload, client)

async def generate_meditation(payload, client=None) -> MeditationOutput:
    return await meditation_flow.run(payload, client)

async def generate_daily_motivation(payload, client=None) -> DailyMotivationOutput:
    return await daily_motivation_flow.run(payload, client)
