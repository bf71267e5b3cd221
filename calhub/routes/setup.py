"""First-run setup routes: status and LLM provider selection."""
from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from calhub.core.context import CalendarContext, get_context
from calhub.core.errors import SetupErrorKind
from calhub.core.result import Err, Ok
from calhub.llm.setup import check_setup_status, save_setup_settings
from calhub.vault.keys import LLMProvider

router = APIRouter(prefix="/setup", tags=["setup"])


class LLMSettings(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    provider: LLMProvider
    api_key: str | None = None
    base_url: str | None = None
    overwrite_existing: bool = False


@router.get("/status")
async def setup_status(ctx: CalendarContext = Depends(get_context)):
    """Whether setup is complete, the selected provider and the connected accounts."""
    match check_setup_status(ctx):
        case Err(error):
            raise HTTPException(status_code=500, detail=error.message)
        case Ok(status):
            return {
                "isComplete": status.is_complete,
                "currentProvider": status.current_provider,
                "hasApiKey": status.has_api_key,
                "calendarCount": status.calendar_count,
                "connectedAccounts": status.connected_accounts,
            }


@router.put("/llm", status_code=204)
async def save_llm_settings(body: LLMSettings, ctx: CalendarContext = Depends(get_context)):
    """
    Select the LLM provider and store its API key.

    Answers 409 when a key is already stored and ``overwrite_existing`` is
    not set.
    """
    match save_setup_settings(ctx, body.provider, body.api_key, body.base_url, body.overwrite_existing):
        case Err(error) if error.kind == SetupErrorKind.KEY_EXISTS:
            raise HTTPException(status_code=409, detail=error.message)
        case Err(error):
            raise HTTPException(status_code=500, detail=error.message)
    return Response(status_code=204)
