"""Tests for asynchronous request verification."""

import asyncio
import threading

import pytest

from ofuda.config import Credentials
from ofuda.signer import Signer
from ofuda.verifier import (
    AsyncVerifier,
    VerificationResult,
    callback_resolver,
    verify_with_callback,
)

from test_verifier import MALFORMED_AUTHORIZATION


class TestAsyncVerifier:
    """Tests for AsyncVerifier.verify."""

    @pytest.mark.asyncio
    async def test_example_scenario(self, credentials, example_request, async_resolver):
        Signer().sign_request(credentials, example_request)

        result = await AsyncVerifier().verify(example_request, async_resolver)

        assert result == VerificationResult(result=True, access_key_id="AKID")

    @pytest.mark.asyncio
    async def test_round_trip_with_prefixed_headers(
        self, credentials, full_request, config, async_resolver
    ):
        Signer(config).sign_request(credentials, full_request)

        result = await AsyncVerifier(config).verify(full_request, async_resolver)

        assert result.result is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", MALFORMED_AUTHORIZATION)
    async def test_malformed_header(self, value, example_request, async_resolver):
        example_request.headers["Authorization"] = value

        result = await AsyncVerifier().verify(example_request, async_resolver)

        assert result == VerificationResult(result=False)

    @pytest.mark.asyncio
    async def test_missing_header_skips_resolver(self, example_request):
        calls = []

        async def resolve(access_key_id):
            calls.append(access_key_id)
            return None

        result = await AsyncVerifier().verify(example_request, resolve)

        assert result.result is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_unknown_access_key(self, credentials, example_request):
        Signer().sign_request(credentials, example_request)

        async def resolve(access_key_id):
            return None

        result = await AsyncVerifier().verify(example_request, resolve)

        assert result == VerificationResult(result=False)

    @pytest.mark.asyncio
    async def test_signature_mismatch(self, credentials, example_request):
        Signer().sign_request(credentials, example_request)

        async def resolve(access_key_id):
            return Credentials(access_key_id, "other")

        result = await AsyncVerifier().verify(example_request, resolve)

        assert result.result is False
        assert result.access_key_id is None

    @pytest.mark.asyncio
    async def test_resolver_awaited_once(self, credentials, example_request):
        calls = []
        Signer().sign_request(credentials, example_request)

        async def resolve(access_key_id):
            calls.append(access_key_id)
            await asyncio.sleep(0)
            return credentials

        await AsyncVerifier().verify(example_request, resolve)

        assert calls == ["AKID"]

    @pytest.mark.asyncio
    async def test_external_timeout(self, credentials, example_request):
        Signer().sign_request(credentials, example_request)

        async def resolve(access_key_id):
            await asyncio.sleep(10)
            return credentials

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(AsyncVerifier().verify(example_request, resolve), timeout=0.01)


class TestCallbackResolver:
    """Tests for adapting callback-style resolvers."""

    @pytest.mark.asyncio
    async def test_immediate_callback(self, credentials):
        def resolver(access_key_id, on_resolved):
            on_resolved(credentials)

        assert await callback_resolver(resolver)("AKID") is credentials

    @pytest.mark.asyncio
    async def test_deferred_callback(self, credentials):
        def resolver(access_key_id, on_resolved):
            asyncio.get_running_loop().call_later(0.01, on_resolved, credentials)

        assert await callback_resolver(resolver)("AKID") is credentials

    @pytest.mark.asyncio
    async def test_callback_from_thread(self, credentials):
        def resolver(access_key_id, on_resolved):
            threading.Thread(target=on_resolved, args=(credentials,)).start()

        assert await asyncio.wait_for(callback_resolver(resolver)("AKID"), timeout=5) is credentials

    @pytest.mark.asyncio
    async def test_second_callback_ignored(self, credentials):
        def resolver(access_key_id, on_resolved):
            on_resolved(credentials)
            on_resolved(None)

        assert await callback_resolver(resolver)("AKID") is credentials

    @pytest.mark.asyncio
    async def test_callback_after_timeout_ignored(self, credentials):
        pending = []

        def resolver(access_key_id, on_resolved):
            pending.append(on_resolved)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(callback_resolver(resolver)("AKID"), timeout=0.01)

        pending[0](credentials)


class TestVerifyWithCallback:
    """on_result fires exactly once on every path."""

    @staticmethod
    def _resolver_returning(value):
        def resolver(access_key_id, on_resolved):
            on_resolved(value)

        return resolver

    @pytest.mark.asyncio
    async def test_success(self, credentials, example_request):
        results = []
        Signer().sign_request(credentials, example_request)

        await verify_with_callback(
            AsyncVerifier(), example_request, self._resolver_returning(credentials), results.append
        )

        assert results == [VerificationResult(result=True, access_key_id="AKID")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", MALFORMED_AUTHORIZATION + [None])
    async def test_malformed_or_missing_header(self, value, credentials, example_request):
        results = []
        if value is not None:
            example_request.headers["Authorization"] = value

        await verify_with_callback(
            AsyncVerifier(), example_request, self._resolver_returning(credentials), results.append
        )

        assert results == [VerificationResult(result=False)]

    @pytest.mark.asyncio
    async def test_unresolved(self, credentials, example_request):
        results = []
        Signer().sign_request(credentials, example_request)

        await verify_with_callback(
            AsyncVerifier(), example_request, self._resolver_returning(None), results.append
        )

        assert results == [VerificationResult(result=False)]

    @pytest.mark.asyncio
    async def test_mismatch(self, credentials, example_request):
        results = []
        Signer().sign_request(credentials, example_request)

        await verify_with_callback(
            AsyncVerifier(),
            example_request,
            self._resolver_returning(Credentials("AKID", "other")),
            results.append,
        )

        assert results == [VerificationResult(result=False)]

    @pytest.mark.asyncio
    async def test_resolver_calling_back_twice(self, credentials, example_request):
        results = []
        Signer().sign_request(credentials, example_request)

        def resolver(access_key_id, on_resolved):
            on_resolved(credentials)
            on_resolved(None)

        await verify_with_callback(AsyncVerifier(), example_request, resolver, results.append)

        assert results == [VerificationResult(result=True, access_key_id="AKID")]

    @pytest.mark.asyncio
    async def test_resolver_error_still_reports(self, credentials, example_request):
        results = []
        Signer().sign_request(credentials, example_request)

        def resolver(access_key_id, on_resolved):
            raise RuntimeError("store unavailable")

        with pytest.raises(RuntimeError):
            await verify_with_callback(AsyncVerifier(), example_request, resolver, results.append)

        assert results == [VerificationResult(result=False)]

    @pytest.mark.asyncio
    async def test_timeout_reports_once(self, credentials, example_request):
        results = []
        Signer().sign_request(credentials, example_request)
        pending = []

        def resolver(access_key_id, on_resolved):
            pending.append(on_resolved)

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(
                verify_with_callback(AsyncVerifier(), example_request, resolver, results.append),
                timeout=0.01,
            )
        pending[0](credentials)
        await asyncio.sleep(0)

        assert results == [VerificationResult(result=False)]
