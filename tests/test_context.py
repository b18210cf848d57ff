from src.core.auth import FirebaseAuthProvider, LocalAuthProvider
from src.core.context import CacheConfig, CoreContext
from src.core.dto.media import MediaType
from src.core.repository import FirestoreMediaRepository, LocalMediaRepository


def build(db, tmp_path):
    return CoreContext(db=db, cache_config=CacheConfig(tmp_path / "cache"))


def test_local_backend_by_default(db, tmp_path):
    core = build(db, tmp_path)
    assert core.backend == "local"
    assert isinstance(core.auth, LocalAuthProvider)
    assert isinstance(core.repository, LocalMediaRepository)
    assert core.cache.media.is_dir()
    assert core.sequencer_config().image_display_ms == 7000
    core.close()
    assert db.conn is None


def test_firebase_without_credentials_falls_back(db, tmp_path):
    db.set_config("backend", "firebase")
    core = build(db, tmp_path)
    assert core.backend == "local"
    core.close()


def test_firebase_backend(db, tmp_path):
    db.set_config("backend", "firebase")
    db.set_config("firebase_api_key", "api-key", encrypt=True)
    db.set_config("firebase_project_id", "demo")
    db.set_config("firebase_collection", "loops")

    core = build(db, tmp_path)
    assert isinstance(core.auth, FirebaseAuthProvider)
    assert isinstance(core.repository, FirestoreMediaRepository)
    assert core.repository.collection == "loops"
    core.close()


def test_local_round_trip_through_loader(db, tmp_path):
    core = CoreContext(db=db, cache_config=CacheConfig(tmp_path / "cache"),
                       auth=LocalAuthProvider(db, iterations=1000))
    user = core.auth.register("a@example.com", "secret1")
    core.repository.create(user.uid, "Intro", "https://example.com/intro.mp4", MediaType.VIDEO)
    result = core.playlist_loader.load(user.uid)
    assert [item.title for item in result.items] == ["Intro"]
    core.close()
