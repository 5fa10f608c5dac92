"""
Example queries. Run one with

    vqpy run examples/queries.py:FindRedCar --source traffic.mp4

The `color` abstract function is bound in conf/query/default.yaml.
"""
import math

from vqpy import Person, Query, Relation, Vehicle, apply, history, model, stateful, stateless


class Car(Vehicle):
    labels = ("car",)

    @model
    def color(self, image) -> str:
        """Dominant color of the car crop."""

    @stateful(input="center", history_len=2)
    def direction(self, centers):
        (x0, y0), (x1, y1) = centers[-2], centers[-1]
        dx, dy = x1 - x0, y1 - y0
        if abs(dx) < 1 and abs(dy) < 1:
            return "still"
        if abs(dx) >= abs(dy):
            return "right" if dx > 0 else "left"
        return "down" if dy > 0 else "up"

    @stateful(input="center", history_len=5)
    def speed(self, centers):
        # pixels per frame, averaged over the window
        (x0, y0), (x1, y1) = centers[0], centers[-1]
        return math.hypot(x1 - x0, y1 - y0) / (len(centers) - 1)

    @stateless(input="bbox")
    def area(self, bbox):
        x1, y1, x2, y2 = bbox
        return (x2 - x1) * (y2 - y1)

    trail = history(10, of="center")


class FindRedCar(Query):
    def __init__(self):
        self.car = Car()

    def frame_constraint(self):
        return (self.car.color == "red") & (self.car.score > 0.5)

    def frame_output(self):
        return (self.car.track_id, self.car.bbox)


class RedCarTurningLeft(FindRedCar):
    def frame_constraint(self):
        return super().frame_constraint() & (self.car.direction == "left")


class FastCars(Query):
    def __init__(self, min_speed: float = 8.0):
        self.car = Car()
        self.min_speed = min_speed

    def frame_constraint(self):
        return self.car.speed > self.min_speed

    def frame_output(self):
        return {"track_id": self.car.track_id, "speed": self.car.speed}

    def video_output(self, results):
        return sorted({m.bindings["car"] for r in results for m in r.matches})


def _distance(a, b):
    return math.hypot(a[0] - b[0], a[1] - b[1])


class PersonNearCar(Query):
    def __init__(self, max_distance: float = 50.0):
        self.person = Person()
        self.car = Car()
        self.max_distance = max_distance

    def frame_constraint(self):
        return apply(_distance, self.person.center, self.car.center) < self.max_distance

    def frame_output(self):
        return (self.person.track_id, self.car.track_id)


class SpatialRelation(Relation):
    @stateless(input1="center", input2="center")
    def distance(self, centers):
        return _distance(*centers)

    @stateful(input="distance", history_len=2)
    def getting_close(self, distances):
        return distances[-1] < distances[-2]


class FindCloseCar(Query):
    """Pairs of cars whose centers got closer since the previous frame."""

    def __init__(self):
        self.car1 = Car()
        self.car2 = Car()
        self.pair = SpatialRelation(self.car1, self.car2)

    def frame_constraint(self):
        return self.pair.getting_close

    def frame_output(self):
        return (self.car1.track_id, self.car2.track_id, self.pair.distance)
