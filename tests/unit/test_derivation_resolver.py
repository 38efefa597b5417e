import pytest
from conftest import FakeImageRepo, make_image

from src.domain.errors import CorruptChain, Forbidden, NotFound
from src.domain.services.derivation_resolver import DerivationResolver


def test_root_resolves_to_itself():
    repo = FakeImageRepo(make_image("img_a"))
    res = DerivationResolver(repo).resolve("user_1", "img_a")
    assert res.root.id == "img_a"
    assert res.is_root


def test_derived_image_resolves_to_root():
    repo = FakeImageRepo(make_image("img_a"), make_image("img_b", original_id="img_a"))
    res = DerivationResolver(repo).resolve("user_1", "img_b")
    assert res.anchor.id == "img_b"
    assert res.root.id == "img_a"
    assert not res.is_root


def test_multi_hop_chain_is_followed():
    repo = FakeImageRepo(
        make_image("img_a"),
        make_image("img_b", original_id="img_a"),
        make_image("img_c", original_id="img_b"),
    )
    assert DerivationResolver(repo).resolve("user_1", "img_c").root.id == "img_a"


def test_missing_image_is_not_found():
    with pytest.raises(NotFound):
        DerivationResolver(FakeImageRepo()).resolve("user_1", "img_missing")


def test_foreign_image_is_not_found():
    repo = FakeImageRepo(make_image("img_a", user_id="user_2"))
    with pytest.raises(NotFound):
        DerivationResolver(repo).resolve("user_1", "img_a")


def test_root_owned_by_someone_else_is_forbidden():
    repo = FakeImageRepo(
        make_image("img_a", user_id="user_2"),
        make_image("img_b", original_id="img_a"),
    )
    with pytest.raises(Forbidden):
        DerivationResolver(repo).resolve("user_1", "img_b")


def test_cycle_is_corrupt():
    repo = FakeImageRepo(
        make_image("img_a", original_id="img_b"),
        make_image("img_b", original_id="img_a"),
    )
    with pytest.raises(CorruptChain):
        DerivationResolver(repo).resolve("user_1", "img_a")


def test_self_reference_is_corrupt():
    repo = FakeImageRepo(make_image("img_a", original_id="img_a"))
    with pytest.raises(CorruptChain):
        DerivationResolver(repo).resolve("user_1", "img_a")


def test_broken_link_is_corrupt():
    repo = FakeImageRepo(make_image("img_b", original_id="img_gone"))
    with pytest.raises(CorruptChain):
        DerivationResolver(repo).resolve("user_1", "img_b")


def test_chain_longer_than_max_depth_is_corrupt():
    images = [make_image("img_0")]
    for i in range(1, 6):
        images.append(make_image(f"img_{i}", original_id=f"img_{i - 1}"))
    repo = FakeImageRepo(*images)

    assert DerivationResolver(repo, max_depth=5).resolve("user_1", "img_5").root.id == "img_0"
    with pytest.raises(CorruptChain):
        DerivationResolver(repo, max_depth=4).resolve("user_1", "img_5")
