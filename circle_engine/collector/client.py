"""
TwitterAPI.io Client

Async HTTP client with:
- Automatic retry with exponential backoff
- Graceful error handling (public methods never raise)
- Response normalization into ProfileMetadata / MentionResult
- Request/response logging
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


# ============================================================================
# DATA TYPES
# ============================================================================

@dataclass
class ProfileMetadata:
    """Normalized account metadata returned by the provider."""
    username: str
    twitter_id: Optional[str] = None
    name: str = ""
    bio: str = ""
    profile_image_url: str = ""
    followers: int = 0
    following: int = 0
    tweet_count: int = 0
    is_verified: bool = False
    verified_type: Optional[str] = None
    created_at: Optional[str] = None


@dataclass
class MentionResult:
    """A tweet returned from a mention/search query."""
    id: str
    author_username: str
    text: str = ""
    created_at: Optional[str] = None
    like_count: int = 0
    reply_count: int = 0
    retweet_count: int = 0
    quote_count: int = 0
    is_retweet: bool = False

    @property
    def engagement(self) -> int:
        return self.like_count + self.reply_count + self.retweet_count + self.quote_count


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


class TwitterAPIError(Exception):
    """Custom exception for TwitterAPI.io errors."""
    def __init__(self, message: str, status_code: int = None, response: dict = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


# ============================================================================
# NORMALIZATION
# ============================================================================

def _to_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def normalize_user(raw: Dict[str, Any]) -> ProfileMetadata:
    """Normalize a raw provider user object (tolerates alternate field names)."""
    image = raw.get("profile_image_url_https") or raw.get("profilePicture") or raw.get("profile_image_url") or ""
    raw_id = raw.get("id") or raw.get("user_id")
    return ProfileMetadata(
        twitter_id=str(raw_id) if raw_id else None,
        username=raw.get("screen_name") or raw.get("userName") or raw.get("username") or "",
        name=raw.get("name") or "",
        bio=raw.get("description") or raw.get("bio") or "",
        profile_image_url=image.replace("_normal", "_400x400"),
        followers=_to_int(raw.get("followers_count", raw.get("followers"))),
        following=_to_int(raw.get("friends_count", raw.get("following"))),
        tweet_count=_to_int(raw.get("statuses_count", raw.get("tweet_count"))),
        is_verified=bool(raw.get("is_blue_verified", raw.get("isBlueVerified", raw.get("verified", False)))),
        verified_type=raw.get("verified_type"),
        created_at=raw.get("created_at") or raw.get("createdAt") or None,
    )


def normalize_tweet(raw: Dict[str, Any]) -> MentionResult:
    """Normalize a raw provider tweet object."""
    author = raw.get("user") or raw.get("author") or {}
    return MentionResult(
        id=str(raw.get("id") or raw.get("tweet_id") or ""),
        author_username=(
            author.get("screen_name")
            or author.get("userName")
            or author.get("username")
            or raw.get("author_username")
            or ""
        ),
        text=raw.get("full_text") or raw.get("text") or "",
        created_at=raw.get("created_at") or raw.get("createdAt"),
        like_count=_to_int(raw.get("favorite_count", raw.get("like_count", raw.get("likeCount")))),
        reply_count=_to_int(raw.get("reply_count", raw.get("replyCount"))),
        retweet_count=_to_int(raw.get("retweet_count", raw.get("retweetCount"))),
        quote_count=_to_int(raw.get("quote_count", raw.get("quoteCount"))),
        is_retweet=bool(raw.get("retweeted_status") or raw.get("is_retweet")),
    )


def _extract_list(data: Any, *keys: str) -> List[Dict]:
    """Pull the item list out of the provider's varying envelope shapes."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            items = data.get(key)
            if isinstance(items, list):
                return items
    return []


def _next_cursor(data: Any) -> Optional[str]:
    if isinstance(data, dict):
        if data.get("has_next_page") is False:
            return None
        return data.get("next_cursor") or None
    return None


# ============================================================================
# CLIENT
# ============================================================================

class TwitterAPIClient:
    """
    Async client for TwitterAPI.io.

    Usage:
        async with TwitterAPIClient(api_key="...") as client:
            user = await client.get_user_info("vitalikbuterin")
            followers = await client.get_followers("ethereum", limit=100)

    All public methods are best-effort: they return None or [] on any
    failure and never raise past the client boundary.
    """

    BASE_URL = "https://api.twitterapi.io"
    MAX_PAGES = 5

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: TwitterAPI.io API key
            base_url: Override for the API base URL
            retry_config: Retry configuration (optional)
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.retry_config = retry_config or RetryConfig()

        self._client = httpx.AsyncClient(
            base_url=base_url or self.BASE_URL,
            headers={
                "X-API-Key": api_key,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

        self._closed = False

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        retry: bool = True,
    ) -> Any:
        """
        Make a request and return the unwrapped `data` payload.

        Raises:
            TwitterAPIError: On HTTP or API-level error
        """
        if self._closed:
            raise TwitterAPIError("Client is closed")

        if retry:
            return await self._request_with_retry(method, path, params, json)
        return await self._make_request(method, path, params, json)

    async def _make_request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
    ) -> Any:
        """Make a single HTTP request."""
        logger.debug(f"{method} {path} params={params}")

        response = await self._client.request(method, path, params=params, json=json)

        if response.status_code != 200:
            raise TwitterAPIError(
                f"API request failed: {response.status_code}",
                status_code=response.status_code,
                response=response.json() if response.content else None,
            )

        result = response.json()

        status = result.get("status") if isinstance(result, dict) else None
        if status is not None and status != "success":
            raise TwitterAPIError(
                f"API error: {result.get('msg') or result.get('message') or status}",
                status_code=response.status_code,
                response=result,
            )

        if isinstance(result, dict) and "data" in result:
            return result["data"]
        return result

    async def _request_with_retry(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
    ) -> Any:
        """Make request with automatic retry on failure."""
        last_exception = None
        delay = self.retry_config.initial_delay

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                return await self._make_request(method, path, params, json)

            except TwitterAPIError as e:
                last_exception = e

                # Don't retry client errors (4xx except 429)
                if e.status_code and e.status_code not in self.retry_config.retryable_status_codes:
                    raise

            except httpx.TimeoutException as e:
                last_exception = TwitterAPIError(f"Request timed out: {e}")

            except httpx.HTTPError as e:
                last_exception = TwitterAPIError(f"HTTP error: {e}")

            if attempt < self.retry_config.max_retries:
                logger.warning(
                    f"{method} {path} failed (attempt {attempt + 1}/{self.retry_config.max_retries + 1}): "
                    f"{last_exception}. Retrying in {delay}s..."
                )
                await asyncio.sleep(delay)
                delay = min(
                    delay * self.retry_config.exponential_base,
                    self.retry_config.max_delay
                )

        raise last_exception

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ========================================================================
    # PAGINATION
    # ========================================================================

    async def _collect_users(self, path: str, params: Dict[str, Any], limit: int) -> List[ProfileMetadata]:
        """Follow cursors until `limit` users are collected or pages run out."""
        users: List[ProfileMetadata] = []
        cursor = None

        for _ in range(self.MAX_PAGES):
            page_params = dict(params)
            if cursor:
                page_params["cursor"] = cursor

            data = await self.request("GET", path, params=page_params)
            raw_users = _extract_list(data, "followers", "users", "data")
            users.extend(normalize_user(u) for u in raw_users if isinstance(u, dict))

            cursor = _next_cursor(data)
            if len(users) >= limit or not cursor or not raw_users:
                break

        return [u for u in users if u.username][:limit]

    async def _collect_tweets(self, method: str, path: str, payload: Dict[str, Any], limit: int) -> List[MentionResult]:
        tweets: List[MentionResult] = []
        cursor = None

        for _ in range(self.MAX_PAGES):
            page = dict(payload)
            if cursor:
                page["cursor"] = cursor

            if method == "POST":
                data = await self.request("POST", path, json=page)
            else:
                data = await self.request("GET", path, params=page)

            raw_tweets = _extract_list(data, "tweets", "data")
            tweets.extend(normalize_tweet(t) for t in raw_tweets if isinstance(t, dict))

            cursor = _next_cursor(data)
            if len(tweets) >= limit or not cursor or not raw_tweets:
                break

        return tweets[:limit]

    # ========================================================================
    # SOCIAL DATA METHODS (best-effort)
    # ========================================================================

    async def get_user_info(self, handle: str) -> Optional[ProfileMetadata]:
        """
        Get profile metadata for a handle.

        Returns:
            ProfileMetadata, or None if the user is unknown or the call failed
        """
        username = handle.strip().lstrip("@")
        try:
            data = await self.request("GET", "/twitter/user/info", params={"userName": username})
            if not isinstance(data, dict) or not data:
                return None
            user = normalize_user(data)
            return user if user.username else None

        except TwitterAPIError as e:
            logger.warning(f"getUserInfo failed for @{username}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error in getUserInfo for @{username}: {e}")
            return None

    async def get_followers(self, handle: str, limit: int = 100) -> List[ProfileMetadata]:
        """
        Get a best-effort follower sample for a handle.

        Args:
            handle: Account handle (with or without @)
            limit: Maximum followers to return

        Returns:
            List of ProfileMetadata (possibly empty)
        """
        username = handle.strip().lstrip("@")
        try:
            page_size = min(500, max(200, limit))
            followers = await self._collect_users(
                "/twitter/user/followers",
                {"userName": username, "pageSize": page_size},
                limit,
            )
            if not followers:
                logger.warning(f"getFollowers returned 0 followers for @{username}")
            return followers

        except TwitterAPIError as e:
            logger.warning(f"getFollowers failed for @{username}: {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error in getFollowers for @{username}: {e}")
            return []

    async def get_verified_followers(self, handle: str, limit: int = 50) -> List[ProfileMetadata]:
        """Get verified followers for a handle (used by profile scoring)."""
        username = handle.strip().lstrip("@")
        try:
            return await self._collect_users(
                "/twitter/user/verified_followers",
                {"userName": username},
                limit,
            )
        except TwitterAPIError as e:
            logger.warning(f"getVerifiedFollowers failed for @{username}: {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error in getVerifiedFollowers for @{username}: {e}")
            return []

    async def search_mentions(self, query: str, sort: str = "Latest", limit: int = 50) -> List[MentionResult]:
        """
        Advanced tweet search.

        Args:
            query: Search query, e.g. '@handle OR "Project Name"'
            sort: "Latest" or "Top"
            limit: Maximum tweets to return
        """
        try:
            return await self._collect_tweets(
                "POST",
                "/twitter/tweet/advanced_search",
                {"query": query, "queryType": sort},
                limit,
            )
        except TwitterAPIError as e:
            logger.warning(f"searchMentions failed for '{query}': {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error in searchMentions for '{query}': {e}")
            return []

    async def search_users(self, query: str, limit: int = 10) -> List[ProfileMetadata]:
        """Search accounts by free-text query."""
        try:
            data = await self.request("GET", "/twitter/user/search", params={"query": query})
            raw_users = _extract_list(data, "users", "data")
            users = [normalize_user(u) for u in raw_users if isinstance(u, dict)]
            return [u for u in users if u.username][:limit]

        except TwitterAPIError as e:
            logger.warning(f"searchUsers failed for '{query}': {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error in searchUsers for '{query}': {e}")
            return []

    async def get_last_tweets(self, handle: str, limit: int = 50) -> List[MentionResult]:
        """Get an account's most recent tweets (used by profile scoring)."""
        username = handle.strip().lstrip("@")
        try:
            return await self._collect_tweets(
                "GET",
                "/twitter/user/last_tweets",
                {"userName": username},
                limit,
            )
        except TwitterAPIError as e:
            logger.warning(f"getLastTweets failed for @{username}: {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error in getLastTweets for @{username}: {e}")
            return []


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def create_client(api_key: str, base_url: Optional[str] = None, timeout: float = 30.0) -> TwitterAPIClient:
    """Create and return a TwitterAPI.io client."""
    return TwitterAPIClient(api_key=api_key, base_url=base_url, timeout=timeout)
