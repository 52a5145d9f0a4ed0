import json
from fastapi import APIRouter, Request, Depends
from typing import Dict, Any

from pydantic import ValidationError

from app.api.tools import tool_handlers
from app.core.logger import logger
from app.core.security import verify_bearer_token
from app.models.vapi_models import ToolCallResult, VapiAssistantResponse, VapiToolCallResponse, VapiWebhookPayload
from app.services.llm_service import get_assistant_config

router = APIRouter()

@router.post("/webhook", dependencies=[Depends(verify_bearer_token)])
async def vapi_webhook(
    request: Request
) -> Dict[str, Any]:
    """
    Handle incoming webhooks from Vapi.ai.
    tool-calls are dispatched by function name, assistant-request returns the
    assistant config, everything else is acknowledged with an empty body.
    """
    try:
        payload = VapiWebhookPayload.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        logger.warning(f"⚠️ Ignoring malformed webhook payload: {e}")
        return {}

    message = payload.message

    if message.type == "assistant-request":
        logger.info("Handling assistant-request")
        return VapiAssistantResponse(assistant=get_assistant_config()).model_dump()

    if message.type != "tool-calls":
        return {}

    handlers = tool_handlers()
    results = []

    for tool_call in message.tool_calls:
        function_name = tool_call.function.name
        arguments = tool_call.function.arguments

        logger.info(f"🔔 Tool call: {function_name}")
        logger.debug(f"📦 Arguments: {arguments}")

        handler = handlers.get(function_name)
        if handler is None:
            logger.warning(f"⚠️ Unknown function name: {function_name}")
            result_content = {"ok": False, "result": f"Unknown tool {function_name}."}
        else:
            # One failing tool must not hide the results of the others
            try:
                result_content = await handler(arguments)
            except Exception as e:
                logger.error(f"❌ Error in {function_name}: {e}", exc_info=True)
                result_content = {"ok": False, "result": "Something went wrong while handling that request.", "error": str(e)}

        results.append(ToolCallResult(
            toolCallId=tool_call.id,
            result=json.dumps(result_content, default=str),
        ))

    return VapiToolCallResponse(results=results).model_dump()
