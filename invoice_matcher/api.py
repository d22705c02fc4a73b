"""
Optional FastAPI REST endpoint for invoice / PO matching.
Can be run with: uvicorn invoice_matcher.api:app --reload
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, Field

from invoice_matcher import __version__
from invoice_matcher.engine.matrix import RecordContractError, build_matrix, validate_records
from invoice_matcher.main import reconcile_pair
from invoice_matcher.reporting import export_csv, summarize_results
from invoice_matcher.schemas.document import FieldSpec
from invoice_matcher.sources import load_field_specs
from invoice_matcher.utils.logging import setup_logging
from invoice_matcher.config import get_config


logger = setup_logging(__name__)
config = get_config()

app = FastAPI(
    title="Invoice Matcher API",
    description="Invoice to purchase order field comparison and match scoring",
    version=__version__,
)


class CompareRequest(BaseModel):
    invoice: Dict[str, Any]
    purchase_order: Dict[str, Any]
    fields: Optional[List[FieldSpec]] = None
    amount_tolerance: Optional[float] = Field(default=None, gt=0)


class MatrixRequest(BaseModel):
    invoices: List[Dict[str, Any]]
    purchase_orders: List[Dict[str, Any]]
    fields: Optional[List[FieldSpec]] = None
    match_threshold: Optional[int] = Field(default=None, ge=0, le=100)
    amount_tolerance: Optional[float] = Field(default=None, gt=0)


def _rejection(e: RecordContractError) -> JSONResponse:
    logger.warning(f"Rejected request: {e}")
    return JSONResponse(
        content={
            "error": str(e),
            "message": "Invalid document records",
        },
        status_code=422,
    )


def _failure(e: Exception, message: str) -> JSONResponse:
    logger.exception(f"{message}: {e}")
    return JSONResponse(
        content={
            "error": str(e),
            "message": message,
        },
        status_code=500,
    )


def _build(request: MatrixRequest):
    return build_matrix(
        request.invoices,
        request.purchase_orders,
        request.fields or load_field_specs(),
        match_threshold=request.match_threshold,
        amount_tolerance=request.amount_tolerance,
    )


@app.post("/compare")
async def compare_endpoint(request: CompareRequest):
    """
    Compare one invoice against one purchase order.

    Returns:
        JSON MatchResult (no likely-match threshold applied)
    """
    try:
        invoices, purchase_orders = validate_records([request.invoice], [request.purchase_order])
        result = reconcile_pair(
            invoices[0],
            purchase_orders[0],
            request.fields or load_field_specs(),
            amount_tolerance=request.amount_tolerance,
        )
        return JSONResponse(content=result.to_report_dict(), status_code=200)

    except RecordContractError as e:
        return _rejection(e)
    except Exception as e:
        return _failure(e, "Failed to compare documents")


@app.post("/matrix")
async def matrix_endpoint(request: MatrixRequest):
    """
    Compare every invoice against every purchase order.

    Returns:
        JSON comparison matrix with summary counts and batch summary
    """
    try:
        matrix = _build(request)
        content = matrix.to_report_dict()
        content["batchSummary"] = summarize_results(matrix.results).model_dump()
        return JSONResponse(content=content, status_code=200)

    except RecordContractError as e:
        return _rejection(e)
    except Exception as e:
        return _failure(e, "Failed to build comparison matrix")


@app.post("/matrix/csv")
async def matrix_csv_endpoint(request: MatrixRequest):
    """Comparison matrix as a CSV export."""
    try:
        matrix = _build(request)
        return PlainTextResponse(content=export_csv(matrix), media_type="text/csv")

    except RecordContractError as e:
        return _rejection(e)
    except Exception as e:
        return _failure(e, "Failed to export comparison matrix")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/config")
async def get_config_endpoint():
    """Get the tunable matching parameters."""
    return {
        "match_threshold": config.MATCH_THRESHOLD,
        "amount_tolerance": config.AMOUNT_TOLERANCE,
        "fields_to_compare": [spec.model_dump(mode="json") for spec in load_field_specs()],
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=config.API_HOST,
        port=config.API_PORT,
        log_level=config.LOG_LEVEL.lower(),
    )
