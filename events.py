# Client -> server
JOIN = "join"
LEAVE_ROOM = "leaveRoom"
CODE_CHANGE = "codeChange"
LANGUAGE_CHANGE = "languageChange"
TYPING = "typing"
COMPILE_CODE = "compileCode"
GET_AI_REVIEW = "getAIReview"

# Server -> client
USER_JOINED = "userJoined"  # full membership snapshot
CODE_UPDATE = "codeUpdate"
LANGUAGE_UPDATE = "languageUpdate"
USER_TYPING = "userTyping"
CODE_RESPONSE = "codeResponse"  # sender only
AI_REVIEW = "AIReview"
JOIN_ERROR = "joinError"

# **Wire format**
# Every frame in both directions is a JSON text message:
# - `{"event": "<name>", "data": <payload>}`
# - `typing` carries `[roomId, userName]` (an object with the same keys is accepted)
