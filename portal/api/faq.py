from fastapi import APIRouter
from pydantic import BaseModel

from portal.schemas.common import ApiResponse
from portal.services.response import ok

router = APIRouter(prefix="/api", tags=["faq"])


class FaqItem(BaseModel):
    question: str
    answer: str


FAQ_ITEMS = [
    FaqItem(
        question="Will I receive a ready-to-use rule set?",
        answer=(
            "No. Submissions feed an exploratory research project into translating "
            "policy into machine-readable rules."
        ),
    ),
    FaqItem(
        question="Who owns the resulting rules?",
        answer=(
            "The submitting organization remains the owner. The outcome is a first "
            "draft and is not a legal guarantee."
        ),
    ),
    FaqItem(
        question="What happens to my uploads?",
        answer=(
            "We prepare a first draft of the rules and discuss it with your experts. "
            "Book a meeting slot after uploading so we can review the output together."
        ),
    ),
    FaqItem(
        question="Which documents can I upload?",
        answer=(
            "Circulars, implementation policy and work instructions. Formal laws are "
            "added as a link to wetten.overheid.nl. Documents classified as restricted "
            "cannot be uploaded; only public or limited-use documents are accepted."
        ),
    ),
    FaqItem(
        question="How long is my data kept?",
        answer=(
            "Submissions are kept for twelve months. Drafts that are never submitted "
            "are removed after one hour."
        ),
    ),
    FaqItem(
        question="Can I add documents after submitting?",
        answer=(
            "Yes. Log in with your submission reference and email address to add or "
            "remove documents."
        ),
    ),
]


@router.get("/faq", response_model=ApiResponse[list[FaqItem]])
def get_faq():
    return ok(FAQ_ITEMS)
