from pydantic import BaseModel, Field
from typing import Optional, List, Literal


# Quiz generation

class QuizGeneratorInput(BaseModel):
    topic: str = Field(min_length=1)
    difficulty: Literal["easy", "medium", "hard"]
    numQuestions: int = Field(ge=1, le=20)

class QuizQuestion(BaseModel):
    questionText: str
    options: List[str] = Field(min_length=4, max_length=4)
    correctOptionIndex: int = Field(ge=0, le=3)
    explanationPrompt: Optional[str] = None

class QuizGeneratorOutput(BaseModel):
    questions: List[QuizQuestion]

class QuizExplanationInput(BaseModel):
    question: str = Field(min_length=1)
    answer: str
    studentAnswer: str
    topic: str

class QuizExplanationOutput(BaseModel):
    explanation: str


# Study tools

class StudyAssistantInput(BaseModel):
    query: str = Field(min_length=1)
    context: Optional[str] = None
    studyTipsPreferences: Optional[str] = None

class StudyAssistantOutput(BaseModel):
    answer: str
    studyTips: Optional[str] = None

class DoubtResolverInput(BaseModel):
    questionImage: str = Field(pattern=r"^data:[\w.+-]+/[\w.+-]+;base64,")
    subjectContext: Optional[str] = None

class DoubtResolverOutput(BaseModel):
    questionText: Optional[str] = None
    explanation: str
    sourceReference: Optional[str] = None

class NcertHighlightsInput(BaseModel):
    chapterText: str = Field(min_length=1)
    query: Optional[str] = None

class NcertHighlightsOutput(BaseModel):
    summary: str
    keyDiagrams: Optional[str] = None
    likelyQuestions: Optional[str] = None
    importantLines: Optional[str] = None

class SmartNotesInput(BaseModel):
    content: str = Field(min_length=100)
    contentType: Literal["test_review", "chapter_summary", "concept_clarification"]
    subject: Optional[Literal["Physics", "Chemistry", "Biology", "General"]] = None
    noteFormatPreferences: Optional[List[Literal["summary", "key_formulas", "mnemonics", "bullet_points", "flowchart_points"]]] = None

class SmartNotesOutput(BaseModel):
    notes: str
    titleSuggestion: Optional[str] = None

class StudyRoomInput(BaseModel):
    topic: str = Field(min_length=1)
    chapter: Optional[str] = None
    studentQuestion: str = Field(min_length=1)
    currentActivity: Optional[str] = None

class StudyRoomOutput(BaseModel):
    quizQuestion: Optional[str] = None
    timeSuggestion: Optional[str] = None
    nextTopicSuggestion: Optional[str] = None
    clarificationOrAnswer: Optional[str] = None

class SyllabusFactInput(BaseModel):
    class_level: str = Field(min_length=1)
    subject: Optional[Literal["Physics", "Chemistry", "Botany", "Zoology", "General Science"]] = None

class SyllabusFactOutput(BaseModel):
    fact: str
    source_hint: Optional[str] = None

class DailyChallengeInput(BaseModel):
    studentFocusArea: Optional[str] = None
    difficultyPreference: Optional[Literal["easy", "medium", "hard"]] = None

class DailyChallengeOutput(BaseModel):
    challengeTitle: str
    challengeDescription: str
    subjectHint: Optional[str] = None


# Wellbeing

class MentalHealthInput(BaseModel):
    mood: str = Field(min_length=1)
    focusLevel: int = Field(ge=1, le=10)

class MentalHealthOutput(BaseModel):
    suggestions: List[str]

class MeditationInput(BaseModel):
    stressLevel: int = Field(ge=1, le=10)
    durationPreference: Literal["1 minute", "3 minutes", "5 minutes"]
    focusArea: Optional[Literal["calm", "focus", "motivation", "exam_prep", "general_wellbeing"]] = None

class MeditationOutput(BaseModel):
    title: str
    script: str

class DailyMotivationInput(BaseModel):
    studentName: Optional[str] = None
    currentFocusArea: Optional[str] = None

class DailyMotivationOutput(BaseModel):
    quote: str


# Tools

class CalculatorInput(BaseModel):
    expression: str = Field(min_length=1)

class CalculatorOutput(BaseModel):
    result: str
    explanation: Optional[str] = None

class DictionaryInput(BaseModel):
    word: str = Field(min_length=1)

class DictionaryOutput(BaseModel):
    word: str
    definition: str
    phonetic: Optional[str] = None
    example_sentence: Optional[str] = None
    synonyms: Optional[List[str]] = None

class TranslationInput(BaseModel):
    textToTranslate: str = Field(min_length=1)
    targetLanguage: str = Field(min_length=1)
    sourceLanguage: Optional[str] = None

class TranslationOutput(BaseModel):
    translated_text: str
    detected_source_language: Optional[str] = None

class CustomizationInput(BaseModel):
    command: str = Field(min_length=1)
    currentDashboard: Optional[str] = None
    availableDashboards: Optional[List[str]] = None

class CustomizationOutput(BaseModel):
    instruction: str
    explanation: str


# Search proxy

class SearchRequest(BaseModel):
    query: str = Field(min_length=1)
    numResults: int = Field(default=5, ge=1, le=10)

class SearchResultItem(BaseModel):
    title: str
    link: str
    snippet: str = ""
    displayLink: Optional[str] = None

class SearchResponse(BaseModel):
    items: List[SearchResultItem] = []
    error: Optional[str] = None
