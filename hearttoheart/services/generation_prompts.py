"""LLM prompts, voice mapping and per-language fallback text for generation calls."""

from hearttoheart.schemas.assessment import ChildProfile, QuestionAnswer
from hearttoheart.schemas.catalog import Catalog

LANGUAGE_NAMES = {
    "zh": "Simplified Chinese (简体中文)",
    "en": "English",
}

# System prompt for the consultation chat
CHAT_SYSTEM_PROMPT_TEMPLATE = """You are "HeartToHeart" (心连心), a professional, empathetic parenting and educational consultant.
Your audience includes both PARENTS and TEACHERS of children aged 1-18.

CRITICAL LANGUAGE RULE:
- You MUST reply entirely in {language_name}.
- Do not mix languages unless explaining a term.

METHODOLOGY & PHILOSOPHY:
1. Expert Knowledge: Integrate insights from Adlerian Psychology (Positive Discipline), Montessori, Carl Jung, Jean Piaget, and Ben Furman's "Kid's Skills" (Finnish method).
2. Kid's Skills Approach (CRITICAL):
   - When a user presents a behavioral problem, DO NOT just give advice.
   - Reframe the problem as a "Skill to be Learned".
   - Example: Instead of saying "Stop interrupting," suggest the child needs to learn the skill of "Listening" or "Waiting for a turn".
   - Ask the user: "What skill does the child need to learn so they don't need this problem behavior anymore?"

ASSESSMENT RECOMMENDATIONS (ACTIONABLE LINKS):
- We have a library of professional assessments: [{assessment_list}].
- If a user describes symptoms (e.g., ADHD, Autism, Depression) or asks for a checkup, you MUST recommend the specific test using a SPECIAL LINK FORMAT.
- Format: [Assessment Title](assessment:ID?age=X&gender=Y&role=Z)
  - ID: The exact ID from the list above.
  - age: The child's specific age (e.g. "5", "3.5") if the user mentioned it.
  - gender: "boy", "girl" if mentioned.
  - role: "parent" or "teacher" if known.
- Example: "I recommend you try the [Attention Assessment](assessment:attention_snap?age=7&gender=boy&role=teacher)."

Response Format:
- Use clear headers.
- If suggesting a solution, include a specific "Skill to Practice" section."""

REPORT_PROMPT_TEMPLATE = """{language_instruction}
Role: Senior Child Psychologist & Educational Consultant.
User Role: {role_text}.
Context: {location_context}.

Task: Analyze the "{assessment_title}" for a {exact_age} old {gender_text}.

Assessment Responses:
{responses}

Please provide a professional, structured report in {language_short}.

Structure:
1. **Evaluation Summary**: Based on the answers, what is the level of concern? (Low/Moderate/High). Be objective but gentle.
2. **Interpretation**: What do these behaviors mean developmentally or psychologically?
3. **Actionable Strategies for a {role_upper}**:
   - Provide 3 specific, actionable strategies applicable to the **{location_context}**.
   - **Kid's Skills Integration**: Identify 1 specific "Skill" the child needs to learn to overcome these challenges.
4. **Next Steps**: When to seek professional medical/psychological help?

This is advisory guidance, not a medical diagnosis. Say so briefly at the end.
Tone: Professional, supportive, constructive."""

TIP_PROMPT_TEMPLATE = """Based on this context: "{context}", generate a single, short, inspiring "Daily Tip" (max 35 words).
Draw wisdom from educational experts like Montessori or Adler.
Output language: {language_short}."""

PREMIUM_TIP_PROMPT_TEMPLATE = """You are an exclusive VIP parenting coach for a premium subscriber.
Context of recent parent activity: "{context}".

Generate a **Deep, Insightful, and Highly Personalized Tip** (max 50 words).
- Go beyond generic advice. Provide a psychological nugget or a specific "Aha!" moment related to their recent query/activity.
- Tone: Exclusive, warm, sophisticated, and deeply empowering.
- Output language: {language_short}."""

SCENARIO_PROMPT_TEMPLATE = """Generate a "Positive Discipline" role-play script.
Output Language: {language_short}.

**Scenario Details:**
- **Adult Role**: {role_text}
- **Child Age**: {exact_age}
- **Challenge**: {solution_title}

**Output Format:**
1. **Typical Negative Reaction**: Dialogue showing negative approach.
2. **Positive Discipline Approach**: Dialogue showing Kind and Firm approach.
3. **Skill Reframing**: One sentence identifying the specific skill (Kid's Skills)."""

STORY_PROMPT_TEMPLATE = """Write a short, soothing bedtime story (approx. 200 words) for a {age}-year-old child named "{child_name}".

**Educational Goal**:
- Learn skill: "{skill_to_learn}".
- Address behavior: "{issue_to_correct}".
- Use "Kid's Skills" philosophy.
- **Language**: {language_short}.
- **Tone**: Warm, magical, encouraging.

Structure: Intro, Challenge, Solution, Happy Ending."""

# Story character -> speech voice
STORY_VOICES = {
    "superman": "onyx",
    "paw_chase": "fable",
    "ultraman": "onyx",
    "minnie": "shimmer",
    "elsa": "nova",
    "peppa": "fable",
    "spongebob": "fable",
    "doraemon": "alloy",
    "totoro": "onyx",
}
DEFAULT_STORY_VOICE = "nova"

FALLBACK_TEXT: dict[str, dict[str, str]] = {
    "zh": {
        "chat_unconfigured": "请配置 API Key 以使用 AI 咨询功能。",
        "chat_empty": "暂时无法生成回复。",
        "chat_error": "连接服务器失败，请稍后再试。",
        "attachment_prompt": "请分析附件并提供建议。",
        "report_unconfigured": "未配置 API Key，无法生成报告。",
        "report_empty": "暂时无法生成报告。",
        "report_error": "生成报告时出错，请稍后重试。",
        "tip_unconfigured": "每个孩子都是静待花开的种子。",
        "tip": "鼓励是孩子心灵的阳光。",
        "scenario_unconfigured": "未配置 API Key，无法生成情景示例。",
        "scenario_empty": "暂时无法生成示例。",
        "scenario_error": "情景示例暂不可用。",
        "story_text": "很久很久以前...",
    },
    "en": {
        "chat_unconfigured": "Please configure your API Key.",
        "chat_empty": "Could not generate response.",
        "chat_error": "Connection error, please try again.",
        "attachment_prompt": "Please analyze the attachment.",
        "report_unconfigured": "API Key missing.",
        "report_empty": "Could not generate report.",
        "report_error": "Error generating report.",
        "tip_unconfigured": "Every child is a flower waiting to bloom.",
        "tip": "Encouragement is sunlight to the soul.",
        "scenario_unconfigured": "API Key missing.",
        "scenario_empty": "Could not generate example.",
        "scenario_error": "Example generation unavailable.",
        "story_text": "Once upon a time...",
    },
}


def fallback(language: str, key: str) -> str:
    """Localized fallback text; unknown languages use English."""
    return FALLBACK_TEXT.get(language, FALLBACK_TEXT["en"])[key]


def language_short(language: str) -> str:
    return "Simplified Chinese" if language == "zh" else "English"


def format_assessment_list(catalog: Catalog) -> str:
    """Describe every assessment for the chat system prompt."""
    return "; ".join(
        f"ID: {assessment.id} (Title: {assessment.title}, AgeGroup: {age_group_id})"
        for age_group_id, assessment in catalog.all_assessments()
    )


def build_chat_system_prompt(catalog: Catalog) -> str:
    return CHAT_SYSTEM_PROMPT_TEMPLATE.format(
        language_name=LANGUAGE_NAMES[catalog.language],
        assessment_list=format_assessment_list(catalog),
    )


def build_report_prompt(
    profile: ChildProfile,
    assessment_title: str,
    answers: list[QuestionAnswer],
    language: str,
) -> str:
    """Build the assessment report prompt.

    Role decides both the addressee and the setting (home vs classroom).
    """
    gender_text = {"boy": "Boy", "girl": "Girl"}.get(profile.gender, "Student/Child")
    is_teacher = profile.role == "teacher"
    role_text = "Teacher" if is_teacher else "Parent"

    return REPORT_PROMPT_TEMPLATE.format(
        language_instruction=(
            "Output STRICTLY in Simplified Chinese." if language == "zh" else "Output STRICTLY in English."
        ),
        role_text=role_text,
        role_upper=role_text.upper(),
        location_context="Classroom/School" if is_teacher else "Home",
        assessment_title=assessment_title,
        exact_age=profile.exactAge or "",
        gender_text=gender_text,
        responses="\n".join(f"- {a.question}: {a.answer}" for a in answers),
        language_short="Chinese" if language == "zh" else "English",
    )


def build_tip_prompt(context: str, is_premium: bool, language: str) -> str:
    template = PREMIUM_TIP_PROMPT_TEMPLATE if is_premium else TIP_PROMPT_TEMPLATE
    return template.format(context=context, language_short=language_short(language))


def build_scenario_prompt(profile: ChildProfile, solution_title: str, language: str) -> str:
    return SCENARIO_PROMPT_TEMPLATE.format(
        language_short=language_short(language),
        role_text="Teacher" if profile.role == "teacher" else "Parent",
        exact_age=profile.exactAge or "",
        solution_title=solution_title,
    )


def build_story_prompt(
    child_name: str,
    age: str,
    skill_to_learn: str,
    issue_to_correct: str,
    language: str,
) -> str:
    return STORY_PROMPT_TEMPLATE.format(
        child_name=child_name,
        age=age,
        skill_to_learn=skill_to_learn,
        issue_to_correct=issue_to_correct,
        language_short=language_short(language),
    )


def build_assessment_tip_context(exact_age: str | None, assessment_title: str, role: str) -> str:
    """Context string for the tip requested alongside a report."""
    return f"Child age {exact_age}, Issue: {assessment_title}, Role: {role}"


def voice_for(voice_id: str) -> str:
    return STORY_VOICES.get(voice_id, DEFAULT_STORY_VOICE)
