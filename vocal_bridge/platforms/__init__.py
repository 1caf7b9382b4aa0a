from vocal_bridge.platforms.base import PlatformClient
from vocal_bridge.platforms.github import GitHubClient
from vocal_bridge.platforms.railway import RailwayClient
from vocal_bridge.platforms.supabase import SupabaseClient

__all__ = ["PlatformClient", "RailwayClient", "SupabaseClient", "GitHubClient"]
