import random
import pytest

from core.mapper import RandomLabelMapper
from core.models import EMOTIONS, DetectedRegion


def test_detection_picks_member_of_vocabulary():
    m = RandomLabelMapper(rng=random.Random(3))
    faces = [DetectedRegion(x=0, y=0, w=50, h=50)]
    seen = {m.map(faces, "neutral") for _ in range(200)}
    assert seen <= set(EMOTIONS)
    # uniform choice over 7 labels hits every one in 200 draws
    assert seen == set(EMOTIONS)


def test_no_detection_is_identity():
    m = RandomLabelMapper()
    assert m.map([], "sad") == "sad"
    assert m.map_detection(False, "happy") == "happy"


def test_seeded_mapper_is_deterministic():
    a = RandomLabelMapper(rng=random.Random(11))
    b = RandomLabelMapper(rng=random.Random(11))
    assert [a.map_detection(True, "neutral") for _ in range(10)] == \
           [b.map_detection(True, "neutral") for _ in range(10)]


def test_vocabulary_validation():
    with pytest.raises(ValueError):
        RandomLabelMapper(vocabulary=())
    with pytest.raises(ValueError):
        RandomLabelMapper(vocabulary=("happy", "bored"))
    assert RandomLabelMapper(vocabulary=("happy",)).map_detection(True, "neutral") == "happy"
