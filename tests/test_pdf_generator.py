from pdf_generator import HISTORY_LABELS, generate_scan_report
from prompt import HISTORY_SECTIONS


def test_report_labels_follow_prompt_labels():
    prompt_labels = [label for _, fields in HISTORY_SECTIONS for _, label in fields]
    assert list(HISTORY_LABELS.values()) == prompt_labels
    assert HISTORY_LABELS["panMasala"] == "Pan Masala/Areca Nut Use"
    assert HISTORY_LABELS["lumpsInNeck"] == "Lumps in Neck"


def test_report_with_history_is_written(tmp_path, image_b64):
    out = tmp_path / "report.pdf"
    generate_scan_report({
        "scan_id": "scan-1",
        "scan_date": "2026-10-18 10:00:00",
        "doctor_name": "Dr Alice",
        "patient_name": None,
        "risk": "MEDIUM",
        "confidence": 64,
        "analysis": "Leukoplakia <suspected> & needs biopsy.\nRefer to ENT.",
        "image_data": image_b64,
        "patient_data": {"age": "45-54", "tobacco": "Yes", "voiceChanges": "No", "risk": "MEDIUM"},
    }, str(out))
    assert out.read_bytes().startswith(b"%PDF")
