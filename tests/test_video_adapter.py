import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import PNG_B64
from tooncraft.adapters import VideoAdapter, huggingface_payload
from tooncraft.cancellation import CancellationToken
from tooncraft.errors import (
    Cancelled,
    ContentSafetyRejected,
    MalformedUpstreamResponse,
    PermanentError,
    TransientServerError,
)
from tooncraft.providers import ProviderDescriptor, ProviderFamily

VEO = ProviderDescriptor.parse("veo-3.1-fast-generate-preview")
LTX = ProviderDescriptor.parse("hf:Lightricks/LTX-Video")
SVD = ProviderDescriptor.parse("hf:stabilityai/stable-video-diffusion-img2vid-xt-1-1")


def _operation(done, uri=None, video_bytes=None):
    video = SimpleNamespace(uri=uri, video_bytes=video_bytes)
    response = SimpleNamespace(generated_videos=[SimpleNamespace(video=video)], rai_media_filtered_reasons=None)
    return SimpleNamespace(done=done, error=None, response=response if done else None)


def _hf(status, **kwargs):
    return httpx.Response(status, request=httpx.Request("POST", "https://hf.test/models/m"), **kwargs)


def _adapter(gemini=None, huggingface=None, **kwargs):
    return VideoAdapter(
        gemini=gemini or SimpleNamespace(),
        huggingface=huggingface or SimpleNamespace(),
        poll_interval=0,
        model_loading_default_wait=0,
        **kwargs,
    )


def test_provider_descriptor_families():
    assert VEO.family is ProviderFamily.GEMINI
    assert LTX.family is ProviderFamily.HUGGINGFACE
    assert LTX.model == "Lightricks/LTX-Video"
    assert str(LTX) == "hf:Lightricks/LTX-Video"


def test_huggingface_payload_shapes():
    assert huggingface_payload("Lightricks/LTX-Video", "robot", "IMG") == {
        "inputs": "robot",
        "parameters": {"image": "IMG", "num_inference_steps": 25},
    }
    assert huggingface_payload("Lightricks/LTX-Video", "robot", "IMG", simple=True) == {"inputs": "IMG"}
    assert huggingface_payload("stabilityai/svd", "robot", "IMG") == {"inputs": "IMG"}


@pytest.mark.asyncio
async def test_veo_polls_until_done_then_downloads():
    gemini = SimpleNamespace(
        generate_videos=AsyncMock(return_value=_operation(False)),
        get_video_operation=AsyncMock(
            side_effect=[_operation(False), _operation(True, uri="https://veo.test/video.mp4")]
        ),
        download=AsyncMock(return_value=b"mp4-bytes"),
    )
    result = await _adapter(gemini).invoke(VEO, "Robo dances", PNG_B64)

    assert base64.b64decode(result) == b"mp4-bytes"
    assert gemini.get_video_operation.await_count == 2
    gemini.download.assert_awaited_once_with("https://veo.test/video.mp4")
    request = gemini.generate_videos.await_args.kwargs
    assert request["model"] == "veo-3.1-fast-generate-preview"
    assert request["image"].mime_type == "image/png"
    assert request["config"].resolution == "720p"


@pytest.mark.asyncio
async def test_veo_inline_bytes_skip_download():
    gemini = SimpleNamespace(
        generate_videos=AsyncMock(return_value=_operation(True, video_bytes=b"inline")),
        download=AsyncMock(),
    )
    assert base64.b64decode(await _adapter(gemini).invoke(VEO, "p", PNG_B64)) == b"inline"
    gemini.download.assert_not_awaited()


@pytest.mark.asyncio
async def test_veo_empty_download_fails():
    gemini = SimpleNamespace(
        generate_videos=AsyncMock(return_value=_operation(True, uri="https://veo.test/v.mp4")),
        download=AsyncMock(return_value=b""),
    )
    with pytest.raises(MalformedUpstreamResponse):
        await _adapter(gemini).invoke(VEO, "p", PNG_B64)


@pytest.mark.asyncio
async def test_veo_filtered_result_is_safety_rejection():
    response = SimpleNamespace(generated_videos=[], rai_media_filtered_reasons=["child safety"])
    gemini = SimpleNamespace(
        generate_videos=AsyncMock(return_value=SimpleNamespace(done=True, error=None, response=response))
    )
    with pytest.raises(ContentSafetyRejected):
        await _adapter(gemini).invoke(VEO, "p", PNG_B64)


@pytest.mark.asyncio
async def test_veo_poll_is_cancellable():
    token = CancellationToken()

    async def poll(operation):
        token.cancel()
        return _operation(False)

    gemini = SimpleNamespace(
        generate_videos=AsyncMock(return_value=_operation(False)),
        get_video_operation=AsyncMock(side_effect=poll),
    )
    with pytest.raises(Cancelled):
        await _adapter(gemini).invoke(VEO, "p", PNG_B64, token)
    assert gemini.get_video_operation.await_count == 1


@pytest.mark.asyncio
async def test_huggingface_waits_out_cold_start():
    huggingface = SimpleNamespace(
        post=AsyncMock(
            side_effect=[_hf(503, json={"estimated_time": 0}), _hf(200, content=b"video")]
        )
    )
    result = await _adapter(huggingface=huggingface).invoke(SVD, "p", PNG_B64)
    assert base64.b64decode(result) == b"video"
    assert huggingface.post.await_count == 2


@pytest.mark.asyncio
async def test_huggingface_cold_start_is_bounded():
    huggingface = SimpleNamespace(post=AsyncMock(return_value=_hf(503, json={"error": "loading"})))
    with pytest.raises(TransientServerError):
        await _adapter(huggingface=huggingface, max_model_loading_waits=2).invoke(SVD, "p", PNG_B64)
    assert huggingface.post.await_count == 3


@pytest.mark.asyncio
async def test_huggingface_retries_once_with_simple_payload():
    huggingface = SimpleNamespace(
        post=AsyncMock(side_effect=[_hf(422, text="bad params"), _hf(200, content=b"video")])
    )
    await _adapter(huggingface=huggingface).invoke(LTX, "Robo dances", PNG_B64)
    payloads = [call.kwargs["json"] for call in huggingface.post.await_args_list]
    assert payloads[0]["inputs"] == "Robo dances"
    assert payloads[1] == {"inputs": PNG_B64}


@pytest.mark.asyncio
async def test_huggingface_gives_up_after_simple_payload():
    huggingface = SimpleNamespace(post=AsyncMock(return_value=_hf(400, text="nope")))
    with pytest.raises(PermanentError):
        await _adapter(huggingface=huggingface).invoke(LTX, "p", PNG_B64)
    assert huggingface.post.await_count == 2


@pytest.mark.asyncio
async def test_huggingface_server_error_is_transient():
    huggingface = SimpleNamespace(post=AsyncMock(return_value=_hf(500, text="oops")))
    with pytest.raises(TransientServerError):
        await _adapter(huggingface=huggingface).invoke(SVD, "p", PNG_B64)
