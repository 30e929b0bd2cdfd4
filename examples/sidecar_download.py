"""
Sidecar Download Example

Demonstrates tracing proxied downloads:
- handlers are decorated once with the interceptor
- mapped paths emit a "sidecar-<function>" span and a Proxy-Span-Id header
- unmapped paths pass through untraced
"""

import asyncio

import httpx
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from sidecar_metrics import (
    HEADER_PROXY_SPAN_ID,
    HoneycombSettings,
    MetricsHandlerInterceptor,
    ProxyRequest,
    Settings,
    configure_logging,
)


def upstream_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith(".tgz"):
        return httpx.Response(200, content=b"tarball-bytes")
    return httpx.Response(404)


async def example_sidecar_download():
    """Proxy a few requests through a traced handler."""
    configure_logging(level="DEBUG")

    settings = Settings(
        honeycomb=HoneycombSettings(
            enabled=True,
            service_name="sidecar-demo",
            functions={
                "npm-download": r"/api/folo/track/[^/]+/npm/.+/-/.+\.tgz$",
                "npm-metadata": "/api/folo/track/[^/]+/npm/",
            },
            root_fields={"environment": "demo"},
        )
    )
    interceptor = MetricsHandlerInterceptor.from_settings(settings)
    exporter = InMemorySpanExporter()
    interceptor.backend.tracer_provider.add_span_processor(SimpleSpanProcessor(exporter))

    async with httpx.AsyncClient(
        transport=httpx.MockTransport(upstream_handler), base_url="http://indy"
    ) as upstream:

        @interceptor
        async def proxy_get(request: ProxyRequest) -> httpx.Response:
            return await upstream.get(request.path, headers=request.header_items())

        paths = [
            "/api/folo/track/2021/npm/group/npmjs/@babel/code-frame/-/code-frame-7.tgz",
            "/api/folo/track/2021/npm/group/npmjs/@babel/code-frame",
            "/health",
        ]

        print("=" * 60)
        print("Sidecar Download Example")
        print("=" * 60)
        for path in paths:
            request = ProxyRequest.from_url("GET", f"http://sidecar{path}")
            response = await proxy_get(request)
            print(f"\n{path}")
            print(f"  status:        {response.status_code}")
            print(f"  Proxy-Span-Id: {request.get_header(HEADER_PROXY_SPAN_ID)}")

    spans = exporter.get_finished_spans()
    print(f"\nSpans emitted: {len(spans)}")
    for span in spans:
        print(f"  {span.name}: {dict(span.attributes)}")


if __name__ == "__main__":
    asyncio.run(example_sidecar_download())
