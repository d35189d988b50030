"""Client for the external image generation gateway.

:class:`GenerationClient` issues exactly one chat-completions call per
:meth:`~GenerationClient.generate` invocation.  It does not cache and does
not retry: retry policy belongs to the caller.

Failure Classification
----------------------
This is the only module that looks at HTTP status codes.  Everything past
it sees the typed errors from :mod:`turnwear.core.errors`:

=================  ==========================================
Outcome            Raised
=================  ==========================================
HTTP 429           :class:`RateLimited`
HTTP 402           :class:`PaymentRequired`
other non-2xx      :class:`UpstreamError` (status + body)
timeout/transport  :class:`UpstreamError` (status ``None``)
deadline passed    :class:`UpstreamError` (status ``None``)
2xx, no image      :class:`NoImageReturned`
=================  ==========================================

Timeouts
--------
``per_angle_timeout`` bounds the whole call, not each socket operation.
The response is streamed and the deadline is checked as each chunk
arrives.  A single stalled read is still cut off by the httpx read timeout,
which is set to the same value.

Usage
-----
::

    with GenerationClient(config) as client:
        data_url = client.generate(request)
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from turnwear.core.config import TurnwearConfig
from turnwear.core.errors import NoImageReturned, PaymentRequired, RateLimited, UpstreamError
from turnwear.core.images import ImageDecodeError, decode_data_url
from turnwear.core.prompt_builder import GenerationRequest

logger = logging.getLogger(__name__)

# Upstream bodies can be large HTML error pages; keep logs readable.
_MAX_LOGGED_BODY = 500


def extract_image_url(data: Any) -> str | None:
    """Return ``choices[0].message.images[0].image_url.url`` if present."""
    try:
        url = data["choices"][0]["message"]["images"][0]["image_url"]["url"]
    except (KeyError, IndexError, TypeError):
        return None
    return url if isinstance(url, str) and url else None


class GenerationClient:
    """Synchronous client for the image generation gateway.

    Attributes:
        _config (TurnwearConfig):
            Supplies ``gateway_url``, ``gateway_api_key``,
            ``generation_model`` and ``per_angle_timeout``.
        _http (httpx.Client):
            Underlying HTTP client.  Injected in tests with an
            ``httpx.MockTransport``.
    """

    def __init__(self, config: TurnwearConfig, http_client: httpx.Client | None = None) -> None:
        self._config = config
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=httpx.Timeout(config.per_angle_timeout))

    # -- Context manager ----------------------------------------------------

    def __enter__(self) -> GenerationClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_http:
            self._http.close()

    # -- Public interface ---------------------------------------------------

    def generate(self, request: GenerationRequest) -> str:
        """Render one angle and return the image as a data URL.

        Args:
            request: The per-angle request from the request builder.

        Returns:
            The ``data:image/...;base64,...`` URL returned by the gateway,
            verified to decode as base64.

        Raises:
            RateLimited: Gateway answered 429.
            PaymentRequired: Gateway answered 402.
            UpstreamError: Any other failure, including timeouts and a
                missing API key.
            NoImageReturned: The response held no decodable image.
        """
        angle = request.angle
        api_key = self._config.gateway_api_key
        if not api_key:
            raise UpstreamError(
                "The image generation service is not configured.",
                angle=angle,
                body="gateway_api_key is not set",
            )

        status_code, body = self._post(request, api_key)
        self._raise_for_status(status_code, body, angle)

        try:
            data = json.loads(body)
        except ValueError as e:
            logger.error(f"Gateway returned non-JSON body for {angle}")
            raise NoImageReturned(f"No image generated for {angle}.", angle=angle) from e

        image_url = extract_image_url(data)
        if image_url is None:
            logger.error(f"Gateway response for {angle} contained no image")
            raise NoImageReturned(f"No image generated for {angle}.", angle=angle)

        try:
            decode_data_url(image_url)
        except ImageDecodeError as e:
            logger.error(f"Gateway image for {angle} is not a decodable data URL: {e}")
            raise NoImageReturned(f"No image generated for {angle}.", angle=angle) from e

        return image_url

    # -- Internal helpers ---------------------------------------------------

    def _timed_out(self, angle: str, cause: Exception | None = None) -> UpstreamError:
        timeout = self._config.per_angle_timeout
        logger.error(f"Generation timed out for {angle} after {timeout}s")
        return UpstreamError(
            f"Image generation timed out for the {angle} view.",
            angle=angle,
            body=str(cause) if cause is not None else f"no complete response within {timeout}s",
        )

    def _post(self, request: GenerationRequest, api_key: str) -> tuple[int, bytes]:
        """Send the request and read the whole body before the deadline.

        Returns:
            Status code and raw response body.

        Raises:
            UpstreamError: On transport errors, or when the body is not fully
                received within ``per_angle_timeout`` seconds.
        """
        angle = request.angle
        timeout = self._config.per_angle_timeout
        deadline = time.monotonic() + timeout

        try:
            with self._http.stream(
                "POST",
                self._config.gateway_url,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
                json=request.to_payload(self._config.generation_model),
                timeout=timeout,
            ) as response:
                chunks = []
                for chunk in response.iter_bytes():
                    if time.monotonic() > deadline:
                        raise self._timed_out(angle)
                    chunks.append(chunk)
                return response.status_code, b"".join(chunks)
        except httpx.TimeoutException as e:
            raise self._timed_out(angle, e) from e
        except httpx.HTTPError as e:
            logger.error(f"Transport error calling gateway for {angle}: {e}")
            raise UpstreamError(angle=angle, body=str(e)) from e

    @staticmethod
    def _raise_for_status(status_code: int, body: bytes, angle: str) -> None:
        """Translate a non-success response into the typed error taxonomy."""
        if status_code == 429:
            logger.warning(f"Gateway rate limit hit while generating {angle}")
            raise RateLimited(angle=angle)

        if status_code == 402:
            logger.warning(f"Gateway reported payment required while generating {angle}")
            raise PaymentRequired(angle=angle)

        if not 200 <= status_code < 300:
            text = body.decode("utf-8", errors="replace")
            logger.error(f"AI gateway error for {angle}: {status_code} {text[:_MAX_LOGGED_BODY]}")
            raise UpstreamError(
                f"AI gateway error for {angle}: {status_code}",
                angle=angle,
                upstream_status=status_code,
                body=text,
            )
