from bubblesave.engine.simulation import BUBBLE_RADIUS, Bubble, BubbleField


def test_capture_skips_held_bubble():
    field = BubbleField()
    field.spawn_held()
    assert field.capture().is_empty

    assert field.drop()
    field.spawn_held()
    snapshot = field.capture()
    assert len(snapshot.bubbles) == 1
    assert all(not record.is_controlled_top for record in snapshot.bubbles)


def test_spawn_held_is_idempotent():
    field = BubbleField()
    first = field.spawn_held()
    assert field.spawn_held() is first
    assert len(field.bubbles) == 1


def test_touching_bubbles_of_same_level_merge():
    field = BubbleField(bubbles=[Bubble(level=1, x=2.0, y=BUBBLE_RADIUS), Bubble(level=1, x=2.5, y=BUBBLE_RADIUS)])

    field.step(0.0)

    assert len(field.bubbles) == 1
    assert field.bubbles[0].level == 2
    assert field.current_score == 4
    assert field.best_score == 4
    assert field.coins == 2
    assert field.categories_progress == {"level_2": 1}


def test_bubbles_fall_and_stay_in_field():
    field = BubbleField(bubbles=[Bubble(level=0, x=5.0, y=10.0)])
    for _ in range(300):
        field.step(1 / 30)
    bubble = field.bubbles[0]
    assert bubble.y >= BUBBLE_RADIUS
    assert bubble.y < 10.0


def test_restore_round_trips_capture():
    source = BubbleField(
        current_score=30,
        best_score=50,
        coins=7,
        bubbles=[Bubble(level=3, x=1.0, y=2.0, vx=0.5, vy=-0.5)],
        categories_progress={"level_3": 2},
        collection_completions={"starter": True},
        boosters={"bomb": 2},
    )
    snapshot = source.capture()

    target = BubbleField()
    target.restore(snapshot)

    assert target.capture() == snapshot
    assert target.best_score == 50
