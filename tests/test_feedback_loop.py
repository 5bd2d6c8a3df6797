import asyncio

from wirehead.actions import PromoteAction, RateAction, decode_action
from wirehead.feedback.loop import FeedbackLoop, render_images
from wirehead.fitness.notify import LatestGenome
from wirehead.fitness.store import FitnessStore
from wirehead.render.models import GenerationParameters
from wirehead.render.placeholder import placeholder_bytes
from wirehead.tags import PromptTemplate, TagTable


def _loop(renderer, channel, **kwargs):
    store = FitnessStore(poll_interval=0.01)
    best = LatestGenome()
    loop = FeedbackLoop(
        store=store,
        best=best,
        renderer=renderer,
        channel=channel,
        template=PromptTemplate(TagTable(["a", "b", "c"])),
        parameters=GenerationParameters(),
        interval=0.01,
        **kwargs,
    )
    return loop, store, best


def test_failed_render_posts_placeholder_with_rating_buttons(failing_renderer, channel):
    loop, store, _ = _loop(failing_renderer, channel)
    store.request((1, 1, 1))

    asyncio.run(loop.step())

    assert len(channel.posts) == 1
    post = channel.posts[0]
    assert post.content == "`b, b, b`"
    assert [image.data for image in post.images] == [placeholder_bytes()]
    assert len(post.buttons) == 5
    actions = [decode_action(button.action) for button in post.buttons]
    assert all(isinstance(a, RateAction) and a.genome == (1, 1, 1) for a in actions)
    assert [b.label for b in post.buttons] == ["-2", "-1", "0", "1", "2"]


def test_candidate_buttons_carry_render_seed(renderer, channel):
    loop, store, _ = _loop(renderer, channel)
    store.request((0, 2, 1))

    asyncio.run(loop.step())

    (post,) = channel.posts
    assert all(decode_action(b.action).seed == renderer.seed for b in post.buttons)
    assert renderer.requests[0][1] == "a, c, b"


def test_hidden_prompt_posts_no_text(renderer, channel):
    loop, store, _ = _loop(renderer, channel, hide_prompt=True)
    store.request((0, 0, 0))

    asyncio.run(loop.step())

    assert channel.posts[0].content is None


def test_best_genome_posted_before_candidates(renderer, channel):
    loop, store, best = _loop(renderer, channel, allow_promotion=True)
    best.publish((2, 1, 0))
    store.request((0, 0, 0))

    asyncio.run(loop.step())

    assert [p.content for p in channel.posts] == [
        "**Best result so far**: `c, b, a`",
        "`a, a, a`",
    ]
    (promote,) = channel.posts[0].buttons
    assert decode_action(promote.action) == PromoteAction(genome=(2, 1, 0), seed=renderer.seed)
    assert best.take() is None


def test_best_genome_without_promotion_has_no_buttons(renderer, channel):
    loop, _, best = _loop(renderer, channel)
    best.publish((2, 1, 0))

    asyncio.run(loop.step())

    assert channel.posts[0].buttons == []


def test_failed_post_is_requeued(renderer, failing_channel):
    loop, store, _ = _loop(renderer, failing_channel)
    store.request((1, 2, 0))

    asyncio.run(loop.step())

    assert loop.failures == 1
    assert store.drain_pending() == {(1, 2, 0)}


def test_rated_genome_is_not_posted(renderer, channel):
    loop, store, _ = _loop(renderer, channel)
    store.request((1, 1, 0))
    store.rate((1, 1, 0), 50)

    asyncio.run(loop.step())

    assert channel.posts == []


def test_run_exits_after_shutdown(renderer, channel):
    loop, store, _ = _loop(renderer, channel)

    async def scenario():
        task = asyncio.create_task(loop.run())
        store.request((0, 1, 2))
        for _ in range(200):
            if channel.posts:
                break
            await asyncio.sleep(0.01)
        store.close()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(scenario())
    assert len(channel.posts) == 1


def test_render_images_uses_custom_placeholder(tmp_path, failing_renderer):
    path = tmp_path / "failed.png"
    path.write_bytes(b"custom placeholder")

    images = asyncio.run(
        render_images(failing_renderer, GenerationParameters(), "x", str(path))
    )

    assert [image.data for image in images] == [b"custom placeholder"]


def test_unencodable_genome_is_dropped_not_retried(renderer, channel):
    loop, store, _ = _loop(renderer, channel)
    too_long = (0,) * 40
    store.request(too_long)

    asyncio.run(loop.step())
    asyncio.run(loop.step())

    assert channel.posts == []
    assert loop.failures == 1
    assert len(renderer.requests) == 1
    assert store.pending_count() == 0


def test_failed_best_render_offers_no_promotion(failing_renderer, channel):
    loop, _, best = _loop(failing_renderer, channel, allow_promotion=True)
    best.publish((2, 1, 0))

    asyncio.run(loop.step())

    (post,) = channel.posts
    assert post.images[0].placeholder
    assert post.buttons == []


def test_unreadable_placeholder_falls_back_to_bundled(tmp_path, failing_renderer, channel):
    loop, store, _ = _loop(
        failing_renderer, channel, placeholder_path=str(tmp_path / "gone.png")
    )
    store.request((1, 1, 1))

    asyncio.run(loop.step())

    (post,) = channel.posts
    assert [image.data for image in post.images] == [placeholder_bytes()]
    assert len(post.buttons) == 5
    assert store.pending_count() == 0
