"""Map view: the route and the live position marker."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import folium

from .config import CONFIG
from .models import LocationSample, RouteStep


class MapView(ABC):
    """External map the host renders navigation onto"""

    @abstractmethod
    def show_route(self, steps: Sequence[RouteStep]) -> None: ...

    @abstractmethod
    def set_position(self, sample: LocationSample) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    def set_current_step(self, step_index: int) -> None:
        """Highlight progress up to step_index"""


class FoliumMapView(MapView):
    """Writes the map to an HTML file, re-rendered on every change"""

    def __init__(self, output_path: str, zoom_start: int = 16):
        self.output_path = output_path
        self.zoom_start = zoom_start
        self.steps: list[RouteStep] = []
        self.position: Optional[LocationSample] = None
        self.trail: list[list[float]] = []
        self.current_step_index = -1

    def _center(self) -> list[float]:
        if self.position:
            return [self.position.coords.lat, self.position.coords.lng]
        if self.steps:
            return [self.steps[0].position.lat, self.steps[0].position.lng]
        return [CONFIG["default_lat"], CONFIG["default_lng"]]

    def render(self) -> folium.Map:
        m = folium.Map(location=self._center(), zoom_start=self.zoom_start)

        if self.steps:
            folium.PolyLine(
                [[s.position.lat, s.position.lng] for s in self.steps],
                weight=5,
                color="#D97706",
                opacity=0.8,
                tooltip="Route"
            ).add_to(m)

            for i, step in enumerate(self.steps):
                reached = i <= self.current_step_index
                folium.CircleMarker(
                    location=[step.position.lat, step.position.lng],
                    radius=8 if i == len(self.steps) - 1 else 5,
                    color="#333333",
                    fill=True,
                    fill_color="#22c55e" if reached else "#ffffff",
                    fill_opacity=1,
                    popup=folium.Popup(f"<b>{i + 1}.</b> {step.instruction_text}", max_width=250)
                ).add_to(m)

        if len(self.trail) > 1:
            folium.PolyLine(self.trail, weight=3, color="blue", opacity=0.6,
                            dash_array="6").add_to(m)

        if self.position:
            lat, lng = self.position.coords.lat, self.position.coords.lng
            if self.position.accuracy_meters:
                folium.Circle(
                    location=[lat, lng],
                    radius=self.position.accuracy_meters,
                    color="#3b82f6",
                    fill=True,
                    fill_opacity=0.1
                ).add_to(m)
            folium.Marker(
                [lat, lng],
                popup=f"Accuracy: {self.position.accuracy_meters:.0f}m",
                icon=folium.Icon(color="red", icon="user")
            ).add_to(m)

        return m

    def save(self):
        self.render().save(self.output_path)

    def show_route(self, steps):
        self.steps = list(steps)
        self.trail = []
        self.current_step_index = -1
        self.save()

    def set_current_step(self, step_index: int):
        self.current_step_index = step_index
        self.save()

    def set_position(self, sample):
        self.position = sample
        self.trail.append([sample.coords.lat, sample.coords.lng])
        self.save()

    def clear(self):
        self.steps = []
        self.position = None
        self.trail = []
        self.current_step_index = -1
        self.save()
