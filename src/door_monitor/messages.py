"""
Messages read out loud by the announcer.
"""

INITIAL_GREETING_MESSAGE = "Dorm room monitor has been activated."
INTRUDER_DETECTED_MESSAGE = "Intruder detected."
NOT_ALLOWED_ENTRY_MESSAGE = "Sorry! I don't recognize you. You are not authorized to be here."
NO_CAMERA_MESSAGE = "Sorry! It seems like your camera has not been fully initialized."
RECOGNITION_NOT_READY_MESSAGE = "Sorry! Face recognition is still initializing."
CAPTURE_FAILED_MESSAGE = "Sorry! I was unable to take your photo."


def allowed_entry_message(visitor_name: str) -> str:
    return f"Hello {visitor_name}! You are authorized to be here."
