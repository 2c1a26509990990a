"""AI-backed utility tools: calculator, dictionary, translator and app customization"""

from .prompt_flow import PromptFlow
from .flow_models import (
    CalculatorInput, CalculatorOutput,
    DictionaryInput, DictionaryOutput,
    TranslationInput, TranslationOutput,
    CustomizationInput, CustomizationOutput,
)


def _calculator_prompt(data: CalculatorInput) -> str:
    return f"""You are a precise scientific calculator for NEET aspirants.
Evaluate the following expression or word problem. Put the final answer (with units if any) in result
and a brief step-by-step explanation in explanation.

Expression: {data.expression}"""


calculator_flow = PromptFlow(
    name="calculator",
    input_model=CalculatorInput,
    output_model=CalculatorOutput,
    template=_calculator_prompt,
    fallback=lambda data: CalculatorOutput(
        result=f'Sorry, I could not process the expression: "{data.expression}". Please check the format or try a different query.'
    ),
    is_empty=lambda data, output: not output.result.strip(),
)


def _dictionary_prompt(data: DictionaryInput) -> str:
    return f"""You are a dictionary for science students. Define the word "{data.word}".
Give the phonetic spelling, a clear definition (prefer the scientific sense when one exists),
an example sentence and a few synonyms."""


dictionary_flow = PromptFlow(
    name="dictionary",
    input_model=DictionaryInput,
    output_model=DictionaryOutput,
    template=_dictionary_prompt,
    fallback=lambda data: DictionaryOutput(
        word=data.word,
        definition=f'Sorry, I could not find a definition for "{data.word}". Please check the spelling or try another word.',
    ),
    is_empty=lambda data, output: not output.definition.strip(),
)


def _translation_prompt(data: TranslationInput) -> str:
    source = data.sourceLanguage or "the detected source language"
    return f"""Translate the text below from {source} into {data.targetLanguage}.
Keep scientific terms accurate. Report the source language in detected_source_language.

Text:
\"\"\"
{data.textToTranslate}
\"\"\""""


translation_flow = PromptFlow(
    name="translation",
    input_model=TranslationInput,
    output_model=TranslationOutput,
    template=_translation_prompt,
    fallback=TranslationOutput(
        translated_text="Sorry, I could not translate the text at this moment. Please try again."
    ),
    is_empty=lambda data, output: not output.translated_text.strip(),
)


def _customization_prompt(data: CustomizationInput) -> str:
    prompt = f"""You help students customize their NEET Prep+ app. Turn the student's command into a short
instruction the app can apply, and explain what was done and why.

Command: {data.command}"""
    if data.currentDashboard:
        prompt += f"\nThe student is currently on the '{data.currentDashboard}' dashboard."
    if data.availableDashboards:
        prompt += f"\nAvailable dashboards: {', '.join(data.availableDashboards)}."
    return prompt


customization_flow = PromptFlow(
    name="customizeApp",
    input_model=CustomizationInput,
    output_model=CustomizationOutput,
    template=_customization_prompt,
    fallback=CustomizationOutput(
        instruction="none",
        explanation="Sorry, I could not understand that customization request, so no change was applied.",
    ),
)


async def calculate_expression(payload, client=None) -> CalculatorOutput:
    return await calculator_flow.run(payload, client)

async def get_dictionary_entry(payload, client=None) -> DictionaryOutput:
    return await dictionary_flow.run(payload, client)

async def translate_text(payload, client=None) -> TranslationOutput:
    return await translation_flow.run(payload, client)

async def customize_app(payload, client=None) -> CustomizationOutput:
    return await customization_flow.run(payload, client)
