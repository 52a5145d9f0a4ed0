from app.tools.definitions import ALL_TOOLS

def get_assistant_config():
    """
    Returns the Vapi assistant configuration.
    This separates the prompt/personality logic from the API handler.
    """
    return {
        "firstMessage": "Thank you for calling. How can I help you today?",
        "model": {
            "provider": "openai",
            "model": "gpt-4o",
            "messages": [
                {
                    "role": "system",
                    "content": (
                        "You are the front desk receptionist of a dental practice. "
                        "Look the patient up before booking, check available times first, "
                        "and only offer times returned by the availability tool. "
                        "Read each tool's 'result' sentence back to the caller. Be polite and concise."
                    )
                }
            ],
            "tools": ALL_TOOLS
        },
        "voice": "jennifer-playht"
    }
