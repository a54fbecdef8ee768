# prompt.py
from typing import List, Optional, Sequence, Tuple

from schemas import AdditionalPatientData, HistopathologicalData

PREAMBLE = (
    "You are an expert oral pathologist with extensive experience in diagnosing oral cancers "
    "and precancerous lesions. Analyze this oral cavity image and provide a detailed clinical "
    "assessment. Use your expertise to evaluate the visual characteristics and correlate them "
    "with the patient's history."
)

OUTPUT_INSTRUCTIONS = """Please provide a systematic analysis in the following format:

1. VISUAL EXAMINATION:
   - Describe the lesion's appearance (color, texture, borders)
   - Location and extent
   - Size and shape characteristics
   - Surface characteristics
   - Any visible vascularity or bleeding
   - Surrounding tissue condition

2. CLINICAL CORRELATION:
   - Analyze how patient risk factors align with visual findings
   - Evaluate symptom duration and progression
   - Consider lifestyle factors' impact
   - Assess systemic health influences

3. DIFFERENTIAL DIAGNOSIS:
   - List potential diagnoses in order of likelihood
   - Include specific ICD-10 codes
   - Justify each possibility based on findings

4. RISK STRATIFICATION:
   - Evaluate malignancy risk (Low/Medium/High)
   - Provide confidence level (0-100%)
   - List specific concerning features
   - Identify protective factors

5. RECOMMENDATIONS:
   - Immediate next steps
   - Required investigations
   - Specialist referrals needed
   - Timeline for interventions

6. MANAGEMENT PLAN:
   - Short-term interventions
   - Long-term monitoring
   - Lifestyle modifications
   - Patient education points

7. CULTURAL CONSIDERATIONS:
   - Specific dietary recommendations
   - Cultural practice modifications
   - Family involvement suggestions
   - Community support resources

Format your key findings at the start as:
CONFIDENCE_LEVEL: (Specify 0-100%)
RISK_LEVEL: (LOW/MEDIUM/HIGH)
ANALYSIS: (Detailed analysis following the above structure)

Be direct and specific in your assessment. If you see concerning features, state them clearly. \
If you're uncertain about aspects, explain why. Focus on actionable insights and clear next steps."""

# (section heading, [(attribute, label), ...])
HISTORY_SECTIONS: Sequence[Tuple[str, Sequence[Tuple[str, str]]]] = (
    ("Primary Risk Factors", (
        ("age", "Age"),
        ("tobacco", "Tobacco Use"),
        ("smoking", "Smoking History"),
        ("pan_masala", "Pan Masala/Areca Nut Use"),
        ("symptom_duration", "Duration of Symptoms"),
    )),
    ("Clinical Symptoms", (
        ("pain_level", "Pain Level"),
        ("difficulty_swallowing", "Difficulty Swallowing"),
        ("weight_loss", "Unexplained Weight Loss"),
        ("persistent_sore_throat", "Persistent Sore Throat"),
        ("voice_changes", "Voice Changes"),
        ("lumps_in_neck", "Lumps in Neck"),
    )),
    ("Medical History", (
        ("family_history", "Family History of Oral Cancer"),
        ("immune_compromised", "Compromised Immune System"),
        ("frequent_mouth_sores", "Frequent Mouth Sores"),
        ("poor_dental_hygiene", "Poor Dental Hygiene"),
    )),
)

ADDITIONAL_FIELDS: Sequence[Tuple[str, str]] = (
    ("lesion_location", "Lesion Location"),
    ("lesion_duration", "Lesion Duration"),
    ("lesion_growth_rate", "Lesion Growth Rate"),
    ("previous_oral_conditions", "Previous Oral Conditions"),
    ("medications", "Current Medications"),
    ("alcohol_consumption", "Alcohol Consumption"),
    ("occupation", "Occupation"),
    ("dietary_habits", "Dietary Habits"),
    ("oral_hygiene", "Oral Hygiene"),
    ("recent_dental_work", "Recent Dental Work"),
    ("last_dental_visit", "Last Dental Visit"),
)


def _format_value(value) -> Optional[str]:
    """Render a field value, or None when the field should be left out."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(value) if value else None
    if isinstance(value, str) and not value.strip():
        return None
    return str(value)


def _render_section(heading: str, source, fields: Sequence[Tuple[str, str]]) -> List[str]:
    lines = []
    for attr, label in fields:
        value = _format_value(getattr(source, attr, None))
        if value is not None:
            lines.append(f"- {label}: {value}")
    if not lines:
        return []
    return [f"{heading}:"] + lines


def render_patient_history(history: Optional[HistopathologicalData]) -> str:
    if history is None:
        return ""

    blocks = []
    for heading, fields in HISTORY_SECTIONS:
        section = _render_section(heading, history, fields)
        if section:
            blocks.append("\n".join(section))

    additional: Optional[AdditionalPatientData] = history.additional_data
    if additional is not None:
        section = _render_section("Additional Information", additional, ADDITIONAL_FIELDS)
        if section:
            blocks.append("\n".join(section))

    if not blocks:
        return ""
    return "Patient Information:\n" + "\n\n".join(blocks)


def compose_prompt(history: Optional[HistopathologicalData] = None) -> str:
    """Build the single text prompt sent alongside the image."""
    parts = [PREAMBLE]
    patient_history = render_patient_history(history)
    if patient_history:
        parts.append(patient_history)
    parts.append(OUTPUT_INSTRUCTIONS)
    return "\n\n".join(parts)
