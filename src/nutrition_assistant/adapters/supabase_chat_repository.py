"""Supabase repository for chat sessions and messages."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from nutrition_assistant.domain.chat import ChatTurn
from nutrition_assistant.services.chat import ChatRepository

SESSION_TYPE = "general"


@dataclass
class SupabaseChatRepository(ChatRepository):
    """Supabase implementation for chat persistence."""

    client: Client

    def get_or_create_session(self, user_id: UUID) -> UUID:
        """Return the newest active session for a user, creating one if needed."""
        response = (
            self.client.table("chat_sessions")
            .select("id")
            .eq("user_id", str(user_id))
            .eq("session_type", SESSION_TYPE)
            .eq("active", True)
            .order("started_at", desc=True)
            .limit(1)
            .execute()
        )
        if response.data:
            return UUID(response.data[0]["id"])

        created = (
            self.client.table("chat_sessions")
            .insert(
                {
                    "user_id": str(user_id),
                    "session_type": SESSION_TYPE,
                    "active": True,
                    "started_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .execute()
        )
        if not created.data:
            raise RuntimeError("Failed to create chat session")
        return UUID(created.data[0]["id"])

    def recent_messages(self, session_id: UUID, limit: int) -> list[ChatTurn]:
        """Return the newest messages in chronological order."""
        response = (
            self.client.table("chat_messages")
            .select("role, content, created_at")
            .eq("session_id", str(session_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        rows = list(reversed(response.data or []))
        return [
            ChatTurn(role=str(row["role"]), content=str(row.get("content") or ""))
            for row in rows
        ]

    def add_message(
        self,
        session_id: UUID,
        role: str,
        content: str,
        metadata: dict[str, object] | None = None,
    ) -> None:
        """Insert a message row."""
        self.client.table("chat_messages").insert(
            {
                "session_id": str(session_id),
                "role": role,
                "content": content,
                "metadata": metadata or {},
            }
        ).execute()
