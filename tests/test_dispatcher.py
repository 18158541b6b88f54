"""
MathDispatch — Service Provider Unit Tests
===========================================

What:  Tests for initialize / invoke / ainvoke routing with fake collaborators.
How:   RecordingTransport captures method, URL, body and headers; FakeEngine
       renders a fixed SVG. No network, no fonts.

What we test:
    ✅ initialize registers all services and fires exactly one onInit
    ✅ showimage with MathML renders locally (no I/O)
    ✅ showimage with a string returns {"status":"warning"}
    ✅ showimage with broken MathML degrades to the warning envelope
    ✅ GET puts parameters in the query string, POST in a form body
    ✅ relative POST targets resolve against the page directory
    ✅ unknown services and transport failures
    ✅ ainvoke renders MathML in a worker thread
"""

import json
import threading
from unittest.mock import MagicMock

import pytest

from mathdispatch.config import DispatcherConfiguration, DispatcherSettings
from mathdispatch.events import CallbackListener
from mathdispatch.services.dispatcher import ON_INIT, ServiceProvider
from mathdispatch.services.engine_base import RenderedSvg
from mathdispatch.services.local_converter import LocalConverter
from mathdispatch.services.registry import Service
from mathdispatch.services.transport_base import FORM_CONTENT_TYPE
from tests.conftest import PAGE_URL, SAMPLE_SVG, RecordingTransport

JAVA_CONFIG = {"integrationPath": "/app/integration", "serverTechnology": "tomcat-java"}
PHP_CONFIG = {"integrationPath": "http://backend.local/integration", "serverTechnology": "php"}


class TestInitialize:

    def test_all_services_registered(self, provider):
        provider.initialize(JAVA_CONFIG)
        for service in Service:
            assert provider.get_path(service)

    def test_get_mathml_example(self, provider):
        provider.initialize(JAVA_CONFIG)
        assert provider.get_path("get-mathml") == (
            "https://editor.example.com:8443/app/integration/getmathml"
        )

    @pytest.mark.parametrize("server, suffix", [("php", ".php"), ("aspx", ".aspx"), ("java", "")])
    def test_suffix_per_technology(self, provider, server, suffix):
        provider.initialize({"URI": "http://h/integration", "server": server})
        for service in Service:
            assert provider.get_path(service) == f"http://h/integration/{service.value}{suffix}"

    def test_reinitialize_overwrites_paths(self, provider):
        provider.initialize(JAVA_CONFIG)
        provider.initialize(PHP_CONFIG)
        assert provider.get_path("showimage") == "http://backend.local/integration/showimage.php"

    def test_same_configuration_twice_is_idempotent(self, provider):
        provider.initialize(JAVA_CONFIG)
        first = provider.registry.as_dict()
        provider.initialize(JAVA_CONFIG)
        assert provider.registry.as_dict() == first

    def test_on_init_fired_once_with_empty_payload(self, provider):
        callback = MagicMock()
        provider.subscribe(CallbackListener(callback, event_name=ON_INIT))

        provider.initialize(JAVA_CONFIG)

        callback.assert_called_once_with({})

    def test_listeners_accumulate_across_reinit(self, provider):
        callback = MagicMock()
        provider.subscribe(CallbackListener(callback, event_name=ON_INIT))
        provider.initialize(JAVA_CONFIG)
        provider.initialize(PHP_CONFIG)
        assert callback.call_count == 2

    def test_accepts_configuration_model(self, provider):
        provider.initialize(DispatcherConfiguration(integration_path="/x", server_technology="aspx"))
        assert provider.configuration.server_technology == "aspx"
        assert provider.get_path("service") == "https://editor.example.com:8443/x/service.aspx"

    def test_defaults_from_settings(self, fake_transport):
        config = DispatcherSettings(
            integration_path="/env/integration", server_technology="php", page_url="http://h/"
        )
        provider = ServiceProvider(transport=fake_transport, config=config)
        provider.initialize()
        assert provider.get_path("showimage") == "http://h/env/integration/showimage.php"

    def test_server_language(self, provider):
        provider.initialize(PHP_CONFIG)
        assert provider.server_language == "php"
        provider.initialize({"integrationPath": "/wirispluginengine/integration", "serverTechnology": "ruby"})
        assert provider.server_language == "ruby"

    def test_independent_providers(self, fake_transport, test_settings):
        first = ServiceProvider(transport=fake_transport, config=test_settings)
        second = ServiceProvider(transport=fake_transport, config=test_settings)
        first.initialize(JAVA_CONFIG)
        assert second.get_path("showimage") is None


class TestShowImage:

    def test_mathml_is_rendered_locally(self, provider, fake_transport, fake_engine):
        provider.initialize(PHP_CONFIG)

        response = json.loads(provider.invoke("showimage", {"mml": "<math><mn>1</mn></math>"}))

        assert response["status"] == "ok"
        assert response["result"] == {
            "height": "2.25",
            "width": "4.5",
            "content": SAMPLE_SVG,
            "baseline": "27",
            "format": "svg",
            "alt": "",
            "role": "math",
        }
        assert fake_transport.calls == []
        assert fake_engine.rendered == ["<math><mn>1</mn></math>"]

    def test_logical_service_name(self, provider):
        provider.initialize(PHP_CONFIG)
        response = json.loads(provider.invoke("show-image", {"mml": "<math>x</math>"}, False))
        assert response["status"] == "ok"
        assert response["result"]["format"] == "svg"

    def test_string_parameters_return_warning(self, provider, fake_transport):
        provider.initialize(PHP_CONFIG)
        assert provider.invoke("show-image", "raw-string-params", False) == '{"status":"warning"}'
        assert fake_transport.calls == []

    def test_malformed_mathml_degrades_to_warning(self, provider, fake_transport, caplog):
        provider.initialize(PHP_CONFIG)

        response = provider.invoke("show-image", {"mml": "<not valid"}, False)

        assert response == '{"status":"warning"}'
        assert fake_transport.calls == []
        assert "Local MathML conversion failed" in caplog.text

    def test_unexpected_engine_error_is_caught(self, provider, fake_transport):
        engine = MagicMock()
        engine.render.side_effect = RuntimeError("engine crashed")
        provider.converter = LocalConverter(engine=engine)
        provider.initialize(PHP_CONFIG)

        assert provider.invoke("showimage", {"mml": "<math/>"}) == '{"status":"warning"}'

    def test_local_conversion_without_initialize(self, provider):
        """The fallback needs no backend configuration at all."""
        response = json.loads(provider.invoke("showimage", {"mml": "<math>x</math>"}))
        assert response["status"] == "ok"

    def test_mapping_without_mathml_goes_remote(self, provider, fake_transport):
        provider.initialize(PHP_CONFIG)
        provider.invoke("showimage", {"formula": "abc123"})
        method, url, body, _ = fake_transport.last_call
        assert method == "POST"
        assert url == "http://backend.local/integration/showimage.php"
        assert body == "formula=abc123"


class TestRemoteDispatch:

    def test_get_appends_query_string(self, provider, fake_transport):
        provider.initialize(PHP_CONFIG)

        response = provider.invoke("getmathml", {"md5": "abc", "lang": "en"}, True)

        assert response == '{"status":"ok"}'
        method, url, body, headers = fake_transport.last_call
        assert method == "GET"
        assert url == "http://backend.local/integration/getmathml.php?md5=abc&lang=en"
        assert body is None

    def test_get_with_preencoded_string(self, provider, fake_transport):
        provider.initialize(PHP_CONFIG)
        provider.invoke("configurationjs", "variablekeys=a,b", is_get=True)
        assert fake_transport.last_call[1] == (
            "http://backend.local/integration/configurationjs.php?variablekeys=a,b"
        )

    def test_post_sends_form_body(self, provider, fake_transport):
        provider.initialize(JAVA_CONFIG)

        provider.invoke("createimage", {"mml": "<math><mi>x</mi></math>", "lang": "en"}, False)

        method, url, body, headers = fake_transport.last_call
        assert method == "POST"
        assert url == "https://editor.example.com:8443/app/integration/createimage"
        assert body == "mml=%3Cmath%3E%3Cmi%3Ex%3C%2Fmi%3E%3C%2Fmath%3E&lang=en"
        assert headers["Content-Type"] == FORM_CONTENT_TYPE

    def test_relative_post_resolves_against_page_directory(self, provider, fake_transport):
        provider.initialize({"integrationPath": "integration", "serverTechnology": "php"})

        provider.invoke("service", {"service": "mathml2accessible"})

        assert fake_transport.last_call[1] == (
            "https://editor.example.com:8443/docs/integration/service.php"
        )

    def test_post_without_parameters_is_a_plain_get(self, provider, fake_transport):
        provider.initialize(PHP_CONFIG)
        provider.invoke("configurationjs")
        method, url, body, _ = fake_transport.last_call
        assert (method, url, body) == ("GET", "http://backend.local/integration/configurationjs.php", None)

    def test_remote_body_is_passed_through(self, provider, fake_transport):
        fake_transport.response = '{"status":"ok","result":{"x":1}}'
        provider.initialize(PHP_CONFIG)
        assert provider.invoke("createimage", {"mml": "<math/>"}) == '{"status":"ok","result":{"x":1}}'

    def test_unknown_service_uses_empty_url(self, provider, fake_transport):
        fake_transport.response = ""
        provider.initialize(PHP_CONFIG)

        assert provider.invoke("nonexistent", {"a": "b"}) == ""
        assert fake_transport.last_call[1] == ""

    def test_empty_response_is_returned_unchanged_by_default(self, provider, fake_transport):
        fake_transport.response = ""
        provider.initialize(PHP_CONFIG)
        assert provider.invoke("createimage", {"mml": "<math/>"}) == ""

    def test_error_envelope_when_enabled(self, fake_engine):
        transport = RecordingTransport(response="")
        config = DispatcherSettings(page_url=PAGE_URL, error_envelope_on_transport_failure=True)
        provider = ServiceProvider(
            transport=transport, converter=LocalConverter(engine=fake_engine), config=config
        )
        provider.initialize(PHP_CONFIG)

        assert provider.invoke("createimage", {"mml": "<math/>"}) == '{"status":"error"}'

    def test_each_invoke_is_independent(self, provider, fake_transport):
        provider.initialize(PHP_CONFIG)
        provider.invoke("createimage", {"a": "1"})
        provider.invoke("createimage", {"a": "2"})
        assert [call[2] for call in fake_transport.calls] == ["a=1", "a=2"]


class TestAsyncDispatch:

    @pytest.mark.asyncio
    async def test_ainvoke_get(self, provider, fake_transport):
        provider.initialize(PHP_CONFIG)

        response = await provider.ainvoke("getmathml", {"md5": "abc"}, True)

        assert response == '{"status":"ok"}'
        assert fake_transport.last_call[:2] == (
            "GET", "http://backend.local/integration/getmathml.php?md5=abc"
        )

    @pytest.mark.asyncio
    async def test_ainvoke_local_conversion(self, provider, fake_transport):
        response = json.loads(await provider.ainvoke("showimage", {"mml": "<math/>"}))
        assert response["result"]["role"] == "math"
        assert fake_transport.calls == []

    @pytest.mark.asyncio
    async def test_ainvoke_string_warning(self, provider):
        assert await provider.ainvoke("showimage", "a=b") == '{"status":"warning"}'

    @pytest.mark.asyncio
    async def test_ainvoke_renders_off_the_event_loop(self, provider):
        threads = []

        def render(mathml):
            threads.append(threading.get_ident())
            return RenderedSvg(outer_markup=SAMPLE_SVG, width="4.5ex", height="2.25ex")

        engine = MagicMock()
        engine.render.side_effect = render
        provider.converter = LocalConverter(engine=engine)

        response = json.loads(await provider.ainvoke("showimage", {"mml": "<math/>"}))

        assert response["status"] == "ok"
        assert threads and threads[0] != threading.get_ident()


class TestLifecycle:

    def test_close_delegates_to_transport(self, test_settings):
        transport = MagicMock()
        with ServiceProvider(transport=transport, config=test_settings):
            pass
        transport.close.assert_called_once()
