"""Reference data endpoints — risk bands and questionnaire contents.

These are read-only endpoints that expose the catalog loaded from the
``v1/`` YAML files.  They don't require authentication since the data is
public regulatory material.
"""

from fastapi import APIRouter, Depends

from nom035_db.models.enums import AssessmentType
from nom035_engine.catalog import QuestionCatalog

from nom035_server.dependencies import get_catalog

router = APIRouter(prefix="/reference", tags=["reference"])


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/risk-levels")
def list_risk_levels(
    catalog: QuestionCatalog = Depends(get_catalog),
) -> list[dict]:
    """Return the psychosocial-risk bands with their score ranges."""
    return [
        {
            "id": band.id.value,
            "min": band.min,
            "max": band.max,
            "title": band.title,
            "title_es": band.title_es,
            "requires_action": band.requires_action,
            "description": band.description,
        }
        for band in catalog.risk_bands
    ]


@router.get("/questions/{assessment_type}")
def list_questions(
    assessment_type: AssessmentType,
    catalog: QuestionCatalog = Depends(get_catalog),
) -> dict:
    """Return one full questionnaire (unfiltered) with its groupings."""
    body: dict = {
        "assessment_type": assessment_type.value,
        "catalog_version": catalog.version,
        "title": catalog.title_for(assessment_type),
        "questions": [q.model_dump() for q in catalog.questions_for(assessment_type)],
    }
    if assessment_type == AssessmentType.TRAUMA_SCREENING:
        body["sections"] = [s.model_dump() for s in catalog.sections.values()]
    else:
        body["categories"] = [c.model_dump() for c in catalog.categories.values()]
        body["domains"] = [d.model_dump() for d in catalog.domains.values()]
        body["conditional_ranges"] = [r.model_dump() for r in catalog.conditional_ranges]
        body["likert_labels"] = list(catalog.likert_labels)
    return body
