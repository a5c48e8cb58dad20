import pytest

from llmloop.utilities.limiters import retry_after_ms


class TestRetryAfterMs:
    def test_retry_after(self):
        assert retry_after_ms({"Retry-After": "3"}) == 3000

    def test_ratelimit_reset(self):
        assert retry_after_ms({"X-RateLimit-Reset": "0.5"}) == 500

    def test_retry_after_preferred(self):
        assert retry_after_ms({"X-RateLimit-Reset": "9", "Retry-After": "1"}) == 1000

    def test_case_insensitive(self):
        assert retry_after_ms({"retry-after": "2"}) == 2000

    @pytest.mark.parametrize("headers", [{}, {"Retry-After": ""}, {"Retry-After": "soon"}])
    def test_default(self, headers):
        assert retry_after_ms(headers) == 2000
        assert retry_after_ms(headers, default_seconds=0.5) == 500

    def test_unparseable_falls_through(self):
        assert retry_after_ms({"Retry-After": "soon", "X-RateLimit-Reset": "4"}) == 4000
