import pytest

from imgvault.application.use_cases.manage_collections import CollectionsUseCase
from imgvault.application.use_cases.update_image import UpdateImageUseCase
from imgvault.domain.entities.image_record import ImageRecord
from imgvault.domain.errors import ImageNotFoundError, InvalidUpdateError
from imgvault.infrastructure.database.repositories.collection_repository import CollectionRepository
from imgvault.infrastructure.database.repositories.image_repository import ImageRepository


@pytest.fixture()
def images(settings):
    return ImageRepository(settings)


@pytest.fixture()
def collections(settings):
    return CollectionsUseCase(CollectionRepository(settings))


@pytest.fixture()
def use_case(images, collections):
    return UpdateImageUseCase(images=images, collections=collections.collections)


@pytest.fixture()
def stored(images):
    return images.create(ImageRecord(id="", sha256="abc", pixvid_url="https://pixvid.org/i/1.png", description="old"))


def test_update_editable_fields(use_case, images, stored):
    updated = use_case.execute(stored.id, {"description": "new", "tags": [" cat ", "", "pet"], "pageTitle": "Cats"})
    assert updated.description == "new"
    assert updated.tags == ("cat", "pet")
    assert updated.page_title == "Cats"
    assert updated.sha256 == "abc"
    assert images.get(stored.id) == updated


def test_snake_case_keys_are_accepted(use_case, stored):
    assert use_case.execute(stored.id, {"source_page_url": "https://a.com"}).source_page_url == "https://a.com"


@pytest.mark.parametrize("field", ["sha256", "pHash", "pixvidUrl", "pixvid_delete_token", "internalAddedTimestamp", "id"])
def test_fixed_fields_are_rejected(use_case, stored, field):
    with pytest.raises(InvalidUpdateError):
        use_case.execute(stored.id, {field: "x"})


def test_tags_must_be_strings(use_case, stored):
    with pytest.raises(InvalidUpdateError):
        use_case.execute(stored.id, {"tags": "cat,pet"})


def test_unknown_collection_is_rejected(use_case, stored):
    with pytest.raises(InvalidUpdateError):
        use_case.execute(stored.id, {"collectionId": "nope"})


def test_assign_and_clear_collection(use_case, collections, stored):
    col = collections.create("Wallpapers")
    assert use_case.execute(stored.id, {"collectionId": col.id}).collection_id == col.id
    assert use_case.execute(stored.id, {"collectionId": None}).collection_id is None


def test_update_missing_image(use_case):
    with pytest.raises(ImageNotFoundError):
        use_case.execute("missing", {"description": "x"})


def test_empty_update_is_a_no_op(use_case, stored):
    assert use_case.execute(stored.id, {}) == stored


def test_collection_crud(collections):
    created = collections.create("  Trips ", "Summer")
    assert created.name == "Trips"
    assert collections.get(created.id) == created

    renamed = collections.update(created.id, name="Holidays")
    assert renamed.name == "Holidays"
    assert renamed.description == "Summer"
    assert [c.id for c in collections.list_all()] == [created.id]

    collections.delete(created.id)
    with pytest.raises(ImageNotFoundError):
        collections.get(created.id)


def test_collection_name_required(collections):
    with pytest.raises(InvalidUpdateError):
        collections.create("   ")


def test_deleting_collection_keeps_member_images(use_case, collections, images, stored):
    col = collections.create("Wallpapers")
    use_case.execute(stored.id, {"collectionId": col.id})
    collections.delete(col.id)
    assert images.get(stored.id).collection_id == col.id
