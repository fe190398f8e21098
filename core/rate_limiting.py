"""
Redis-based rate limiting for API endpoints.
Fixed-window counter per client, keyed by user id when authenticated and by
IP address otherwise.
"""
import logging
from functools import wraps

import redis
from django.conf import settings
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response

logger = logging.getLogger(__name__)

_redis_client = None
_redis_checked = False


def get_redis_client():
    """
    Return a connected Redis client, or None when Redis is unreachable.

    The connection is attempted once per process.
    """
    global _redis_client, _redis_checked
    if _redis_checked:
        return _redis_client
    _redis_checked = True
    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5
        )
        client.ping()
        _redis_client = client
    except (redis.ConnectionError, redis.TimeoutError) as e:
        logger.warning(f"Redis connection failed: {e}. Rate limiting will be disabled.")
        _redis_client = None
    return _redis_client


def get_client_ip(request):
    """Extract client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR', 'unknown')
    return ip


def get_client_key(request):
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return f"user:{user.pk}"
    return f"ip:{get_client_ip(request)}"


def _rate_limited_response(max_requests, window_seconds, ttl):
    return Response(
        {
            'error': 'Rate limit exceeded',
            'detail': f'Maximum {max_requests} requests per {window_seconds} seconds allowed.',
            'retry_after': ttl
        },
        status=status.HTTP_429_TOO_MANY_REQUESTS,
        headers={
            'X-RateLimit-Limit': str(max_requests),
            'X-RateLimit-Remaining': '0',
            'X-RateLimit-Reset': str(ttl),
            'Retry-After': str(ttl)
        }
    )


def _hit(key, window_seconds):
    """Increment the counter for ``key``; returns (count, ttl)."""
    client = get_redis_client()
    current_count = client.incr(key)
    if current_count == 1:
        client.expire(key, window_seconds)
    return current_count, client.ttl(key)


def _limiting_active():
    return getattr(settings, 'RATE_LIMIT_ENABLED', True) and get_redis_client() is not None


def rate_limit(max_requests: int = 20, window_seconds: int = 60):
    """
    Redis-based rate limiting decorator for DRF view methods.

    Usage:
        @rate_limit(20, 60)  # 20 requests per minute
        def get(self, request):
            ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(self, request, *args, **kwargs):
            if not _limiting_active():
                return view_func(self, request, *args, **kwargs)

            key = f"rate_limit:{type(self).__name__}.{view_func.__name__}:{get_client_key(request)}"
            try:
                current_count, ttl = _hit(key, window_seconds)
            except redis.RedisError as e:
                logger.error(f"Redis error in rate limiting: {e}")
                return view_func(self, request, *args, **kwargs)

            if current_count > max_requests:
                logger.warning(f"Rate limit exceeded for {key}")
                return _rate_limited_response(max_requests, window_seconds, ttl)

            response = view_func(self, request, *args, **kwargs)
            response['X-RateLimit-Limit'] = str(max_requests)
            response['X-RateLimit-Remaining'] = str(max(0, max_requests - current_count))
            response['X-RateLimit-Reset'] = str(ttl)
            return response

        return wrapper
    return decorator


class RateLimitMixin:
    """
    Mixin class for class-based views to add rate limiting.

    Usage:
        class LoginView(RateLimitMixin, APIView):
            rate_limit_max_requests = 10
            rate_limit_window_seconds = 60
    """
    rate_limit_max_requests = 20
    rate_limit_window_seconds = 60

    def dispatch(self, request, *args, **kwargs):
        if not _limiting_active():
            return super().dispatch(request, *args, **kwargs)

        # request.user is not resolved by DRF yet, so key by IP here
        key = f"rate_limit:{self.__class__.__name__}:ip:{get_client_ip(request)}"
        try:
            current_count, ttl = _hit(key, self.rate_limit_window_seconds)
        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            return super().dispatch(request, *args, **kwargs)

        if current_count > self.rate_limit_max_requests:
            logger.warning(f"Rate limit exceeded for {key}")
            # Rejected before DRF dispatch, so no renderer is attached yet
            response = JsonResponse(
                {
                    'error': 'Rate limit exceeded',
                    'detail': (
                        f'Maximum {self.rate_limit_max_requests} requests per '
                        f'{self.rate_limit_window_seconds} seconds allowed.'
                    ),
                    'retry_after': ttl
                },
                status=status.HTTP_429_TOO_MANY_REQUESTS
            )
            response['X-RateLimit-Limit'] = str(self.rate_limit_max_requests)
            response['X-RateLimit-Remaining'] = '0'
            response['X-RateLimit-Reset'] = str(ttl)
            response['Retry-After'] = str(ttl)
            return response

        response = super().dispatch(request, *args, **kwargs)
        response['X-RateLimit-Limit'] = str(self.rate_limit_max_requests)
        response['X-RateLimit-Remaining'] = str(max(0, self.rate_limit_max_requests - current_count))
        response['X-RateLimit-Reset'] = str(ttl)
        return response
