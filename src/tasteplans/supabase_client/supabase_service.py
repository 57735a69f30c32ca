from typing import Optional, List, Dict, Any

from supabase import create_client, Client

from tasteplans.config import ServiceSettings, load_settings


USER_FIELDS = "id, handle, name, image"


class SupabaseService:
    """Supabase-backed store for users, activities, reviews and friendships"""

    def __init__(self, settings: Optional[ServiceSettings] = None, client: Optional[Client] = None):
        if client is None:
            settings = settings or load_settings()
            url = settings.supabase_url
            # Use service role key for full access
            key = settings.supabase_key

            if not url or not key:
                raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment")

            client = create_client(url, key)
        self.client: Client = client

    # ==================== AUTH ====================

    def get_session_user_id(self, access_token: str) -> Optional[str]:
        """Resolve a Supabase Auth access token to the user id it was issued for"""
        response = self.client.auth.get_user(access_token)
        user = getattr(response, "user", None)
        return str(user.id) if user else None

    # ==================== USERS ====================

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a user by ID"""
        response = (self.client.table("users")
                   .select("id, handle, name, email, image")
                   .eq("id", user_id)
                   .execute())
        return response.data[0] if response.data else None

    def get_user_by_handle(self, handle: str) -> Optional[Dict[str, Any]]:
        """Get a user by unique handle"""
        response = self.client.table("users").select(USER_FIELDS).eq("handle", handle).execute()
        return response.data[0] if response.data else None

    def get_users_by_handles(self, handles: List[str]) -> List[Dict[str, Any]]:
        """Get every user whose handle is in ``handles``"""
        if not handles:
            return []
        response = self.client.table("users").select("id, handle, name").in_("handle", handles).execute()
        return response.data

    def get_users_by_ids(self, user_ids: List[str]) -> List[Dict[str, Any]]:
        """Get users by a list of IDs"""
        if not user_ids:
            return []
        response = self.client.table("users").select(USER_FIELDS).in_("id", user_ids).execute()
        return response.data

    def update_user_handle(self, user_id: str, handle: str) -> Optional[Dict[str, Any]]:
        """Set a user's handle"""
        response = self.client.table("users").update({"handle": handle}).eq("id", user_id).execute()
        return response.data[0] if response.data else None

    # ==================== ACTIVITIES ====================

    def upsert_activity(self, place_id: str, name: str) -> Dict[str, Any]:
        """Create an activity or rename the existing one with the same place id"""
        response = (self.client.table("activities")
                   .upsert({"place_id": place_id, "name": name}, on_conflict="place_id")
                   .execute())
        return response.data[0] if response.data else None

    # ==================== REVIEWS ====================

    def create_review(self, user_id: str, activity_id: str, rating: float,
                      text: str = "", tags: Optional[List[str]] = None) -> Dict[str, Any]:
        """Create a review of an activity"""
        data = {
            "user_id": user_id,
            "activity_id": activity_id,
            "rating": rating,
            "text": text,
            "tags": tags or [],
        }
        response = self.client.table("reviews").insert(data).execute()
        return response.data[0] if response.data else None

    def get_review(self, review_id: str) -> Optional[Dict[str, Any]]:
        """Get a review by ID"""
        response = self.client.table("reviews").select("*").eq("id", review_id).execute()
        return response.data[0] if response.data else None

    def get_user_reviews(self, user_id: str, limit: int = 100) -> List[Dict[str, Any]]:
        """Get a user's reviews with their activity, newest first"""
        response = (self.client.table("reviews")
                   .select("id, rating, text, tags, created_at, activities(name, place_id, type)")
                   .eq("user_id", user_id)
                   .order("created_at", desc=True)
                   .limit(limit)
                   .execute())
        return response.data

    def get_recent_reviews(self, user_ids: List[str], limit: int = 100) -> List[Dict[str, Any]]:
        """Get the most recent reviews across several users, newest first"""
        if not user_ids:
            return []
        response = (self.client.table("reviews")
                   .select("rating, tags, created_at, activities(name, place_id, type)")
                   .in_("user_id", user_ids)
                   .order("created_at", desc=True)
                   .limit(limit)
                   .execute())
        return response.data

    def delete_review(self, review_id: str) -> bool:
        """Delete a review"""
        response = self.client.table("reviews").delete().eq("id", review_id).execute()
        return len(response.data) > 0

    # ==================== FRIENDSHIPS ====================

    def get_friendships(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's side of every friendship, newest first"""
        response = (self.client.table("friendships")
                   .select("*")
                   .eq("user_id", user_id)
                   .order("created_at", desc=True)
                   .execute())
        return response.data

    def find_friendship(self, user_id: str, other_id: str) -> Optional[Dict[str, Any]]:
        """Get a friendship row between two users in either direction"""
        response = (self.client.table("friendships")
                   .select("*")
                   .or_(_pair_filter("user_id", "friend_id", user_id, other_id))
                   .limit(1)
                   .execute())
        return response.data[0] if response.data else None

    def create_friendship(self, user_id: str, other_id: str) -> List[Dict[str, Any]]:
        """Create both directed friendship rows in a single insert"""
        rows = [
            {"user_id": user_id, "friend_id": other_id},
            {"user_id": other_id, "friend_id": user_id},
        ]
        response = self.client.table("friendships").insert(rows).execute()
        return response.data

    def delete_friendship(self, user_id: str, other_id: str) -> int:
        """Delete both sides of a friendship"""
        response = (self.client.table("friendships")
                   .delete()
                   .or_(_pair_filter("user_id", "friend_id", user_id, other_id))
                   .execute())
        return len(response.data)

    # ==================== FRIEND_REQUESTS ====================

    def create_friend_request(self, sender_id: str, receiver_id: str) -> Dict[str, Any]:
        """Create a pending friend request"""
        data = {"sender_id": sender_id, "receiver_id": receiver_id}
        response = self.client.table("friend_requests").insert(data).execute()
        return response.data[0] if response.data else None

    def get_friend_request(self, request_id: str) -> Optional[Dict[str, Any]]:
        """Get a friend request by ID"""
        response = self.client.table("friend_requests").select("*").eq("id", request_id).execute()
        return response.data[0] if response.data else None

    def find_friend_request(self, user_id: str, other_id: str) -> Optional[Dict[str, Any]]:
        """Get a pending request between two users in either direction"""
        response = (self.client.table("friend_requests")
                   .select("*")
                   .or_(_pair_filter("sender_id", "receiver_id", user_id, other_id))
                   .limit(1)
                   .execute())
        return response.data[0] if response.data else None

    def get_friend_requests(self, receiver_id: Optional[str] = None,
                            sender_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get friend requests, optionally filtered by receiver or sender"""
        query = self.client.table("friend_requests").select("*")
        if receiver_id:
            query = query.eq("receiver_id", receiver_id)
        if sender_id:
            query = query.eq("sender_id", sender_id)
        response = query.order("created_at", desc=True).execute()
        return response.data

    def delete_friend_request(self, request_id: str) -> bool:
        """Delete a friend request"""
        response = self.client.table("friend_requests").delete().eq("id", request_id).execute()
        return len(response.data) > 0


def _pair_filter(left: str, right: str, a: str, b: str) -> str:
    return f"and({left}.eq.{a},{right}.eq.{b}),and({left}.eq.{b},{right}.eq.{a})"


# Singleton instance
_supabase_service = None


def get_supabase_service() -> SupabaseService:
    """Get or create the singleton SupabaseService instance"""
    global _supabase_service
    if _supabase_service is None:
        _supabase_service = SupabaseService()
    return _supabase_service
