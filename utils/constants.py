"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Command keywords
- Backend ticket texts

(Prevents hardcoding across the codebase)
"""

# ============================================================
# COMMANDS
# ============================================================

HELP_COMMAND = "/help"
ORDER_COMMAND = "/order"

VERIFICATION_CODE_LENGTH = 6

# ============================================================
# VERIFICATION FLOW
# ============================================================

USER_NOT_FOUND_MESSAGE = """❌ Username/email not found in our system.
Please enter your correct GreatFollows username or email."""

VERIFICATION_INIT_FAILED_MESSAGE = """⚠️ Could not initiate verification.
Please try again later or contact support."""

CODE_ISSUED_MESSAGE = """🔐 Verification code for {username}:

📌 {code}

This code will expire in {ttl_minutes} minutes.
Reply with this code to verify your account."""

NO_ACTIVE_REQUEST_MESSAGE = """❌ No active verification request found.
Please start over by sending your username."""

CODE_EXPIRED_MESSAGE = """❌ Verification code expired.
Please start over by sending your username."""

INVALID_CODE_MESSAGE = "❌ Invalid verification code. Please try again."

VERIFICATION_SUCCESS_MESSAGE = """✅ Verification successful! Welcome {username}!

You can now:
- Check your orders with /order [id]
- Get help with /help"""

# ============================================================
# VERIFIED USER COMMANDS
# ============================================================

HELP_MESSAGE = """📖 {username}'s Account Help:

/order [id] - Check order status
/help - Show this message

Need support? Contact our team."""

ORDER_USAGE_MESSAGE = """❌ Please provide an order ID.
Example: /order 12345"""

ORDER_FETCH_FAILED_MESSAGE = """❌ Could not fetch order details.
Please check the order ID and try again."""

ORDER_STATUS_MESSAGE = """📦 Order #{id}
🛍️ Service: {service_name}
🔄 Status: {status}
📊 Quantity: {quantity}
⏳ Remaining: {remains}
📅 Created: {created}
🔗 Link: {link}"""

LINK_PLACEHOLDER = "N/A"

DEFAULT_MENU_MESSAGE = """ℹ️ Hello {username}!

Send /order [id] to check order status
Or /help for more options"""

# ============================================================
# ERRORS
# ============================================================

GENERIC_ERROR_MESSAGE = "⚠️ An error occurred. Please try again."

# ============================================================
# BACKEND TICKETS
# ============================================================

TICKET_SUBJECT = "WhatsApp Verification Request"
TICKET_OPEN_MESSAGE = "User {username} requesting WhatsApp verification"
TICKET_RESOLVED_STATUS = "resolved"
TICKET_RESOLVED_MESSAGE = "User successfully verified via WhatsApp"
TICKET_CLOSED_STATUS = "closed"
TICKET_SUPERSEDED_MESSAGE = "Verification request superseded by a newer request"
TICKET_EXPIRED_MESSAGE = "Verification code expired before confirmation"
