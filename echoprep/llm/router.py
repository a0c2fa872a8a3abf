"""
Model router for selecting a model per AI feature.
"""
from echoprep.core.config import OPENAI_MODEL

# Feature -> model mapping
MODEL_ROUTING = {
    "interview_reply": OPENAI_MODEL,
    "interview_feedback": OPENAI_MODEL,
    "ats_check": OPENAI_MODEL,
}

# Sampling temperature per feature; grading stays near-deterministic
TEMPERATURE_ROUTING = {
    "interview_reply": 0.7,
    "interview_feedback": 0.2,
    "ats_check": 0.2,
}


def get_model_for_feature(feature: str) -> str:
    return MODEL_ROUTING.get(feature, OPENAI_MODEL)


def get_temperature_for_feature(feature: str) -> float:
    return TEMPERATURE_ROUTING.get(feature, 0.7)
