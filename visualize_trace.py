#!/usr/bin/env python3
"""
Visualize a recorded GPS trace on a map, optionally against a route.

Usage:
    python visualize_trace.py trace.json [--steps route.json] [--output map.html]

Each fix is replayed through a LocationTracker so the map shows where the
step index advanced and where approach announcements would have fired.
"""

import argparse
import json
import webbrowser
from pathlib import Path

import folium

from vendnav import LocationSample, LocationTracker, RouteStep
from vendnav.directions import load_route_file


def load_trace(trace_path: str) -> list[dict]:
    """Load GPS trace from JSON file"""
    with open(trace_path, encoding="utf-8") as f:
        data = json.load(f)
    return data["trace"]


def replay_steps(samples: list[LocationSample], steps: list[RouteStep]) -> tuple[dict, dict]:
    """Feed samples through a tracker; returns {sample index: step reached} and approaches"""
    reached: dict[int, int] = {}
    approached: dict[int, int] = {}
    cursor = {"i": 0}

    tracker = LocationTracker(
        None,
        on_step_change=lambda e: reached.setdefault(cursor["i"], e.step_index),
        on_approaching_step=lambda e: approached.setdefault(cursor["i"], e.step_index),
    )
    tracker.set_route_steps(steps)
    for i, sample in enumerate(samples):
        cursor["i"] = i
        tracker.update_position(sample)
    return reached, approached


def create_trace_map(trace: list[dict], steps: list[RouteStep], output_path: str) -> bool:
    """Create map visualization of GPS trace"""

    valid_entries = [e for e in trace if e.get("location")]
    if not valid_entries:
        print("No valid GPS locations in trace")
        return False

    samples = [LocationSample.from_dict(e["location"]) for e in valid_entries]
    lats = [s.coords.lat for s in samples]
    lngs = [s.coords.lng for s in samples]
    m = folium.Map(location=[sum(lats) / len(lats), sum(lngs) / len(lngs)], zoom_start=16)

    folium.TileLayer("CartoDB positron", name="Light").add_to(m)
    folium.TileLayer("CartoDB dark_matter", name="Dark").add_to(m)

    folium.PolyLine(
        [[s.coords.lat, s.coords.lng] for s in samples],
        weight=4,
        color="blue",
        opacity=0.7,
        popup="GPS Trace"
    ).add_to(m)

    if steps:
        route_group = folium.FeatureGroup(name="Route", show=True)
        folium.PolyLine(
            [[s.position.lat, s.position.lng] for s in steps],
            weight=5,
            color="#D97706",
            opacity=0.8
        ).add_to(route_group)
        for i, step in enumerate(steps):
            folium.CircleMarker(
                location=[step.position.lat, step.position.lng],
                radius=7,
                color="#333333",
                fill=True,
                fill_color="#D97706",
                popup=folium.Popup(f"<b>Step {i + 1}</b><br>{step.instruction_text}", max_width=250)
            ).add_to(route_group)
        route_group.add_to(m)

    reached, approached = replay_steps(samples, steps) if steps else ({}, {})

    points_group = folium.FeatureGroup(name="GPS Points", show=False)
    for i, (entry, sample) in enumerate(zip(valid_entries, samples)):
        elapsed = entry.get("elapsed", 0)
        accuracy = sample.accuracy_meters
        popup = f"""
            <b>Point {i + 1}</b><br>
            Time: {int(elapsed // 60)}m {int(elapsed % 60)}s<br>
            Lat: {sample.coords.lat:.6f}<br>
            Lng: {sample.coords.lng:.6f}<br>
            Accuracy: {accuracy:.0f}m
        """
        if i in reached:
            popup += f"<br><b>Reached step {reached[i] + 1}</b>"
        if i in approached:
            popup += f"<br>Approaching step {approached[i] + 1}"

        # Color based on accuracy
        if not accuracy:
            color = "gray"
        elif accuracy < 10:
            color = "green"
        elif accuracy < 20:
            color = "orange"
        else:
            color = "red"

        folium.CircleMarker(
            location=[sample.coords.lat, sample.coords.lng],
            radius=8 if i in reached else 5,
            color="purple" if i in reached else color,
            fill=True,
            popup=folium.Popup(popup, max_width=200)
        ).add_to(points_group if i not in reached else m)
    points_group.add_to(m)

    folium.Marker(
        [samples[0].coords.lat, samples[0].coords.lng],
        popup="Start",
        icon=folium.Icon(color="green", icon="play")
    ).add_to(m)
    folium.Marker(
        [samples[-1].coords.lat, samples[-1].coords.lng],
        popup="End",
        icon=folium.Icon(color="red", icon="stop")
    ).add_to(m)

    failures = [e for e in trace if not e.get("location")]
    if failures:
        print(f"{len(failures)} failed fixes in trace")

    folium.LayerControl().add_to(m)
    m.save(output_path)
    print(f"Map saved to {output_path} ({len(samples)} points, {len(reached)} step changes)")
    return True


def main():
    parser = argparse.ArgumentParser(description="Visualize a recorded GPS trace")
    parser.add_argument("trace", help="GPS trace JSON file")
    parser.add_argument("--steps", metavar="FILE", help="Route steps JSON file")
    parser.add_argument("--output", "-o", default="trace_map.html", help="Output HTML file")
    parser.add_argument("--open", action="store_true", help="Open the map in a browser")
    args = parser.parse_args()

    trace = load_trace(args.trace)
    steps = load_route_file(args.steps).steps if args.steps else []
    if create_trace_map(trace, steps, args.output) and args.open:
        webbrowser.open(f"file://{Path(args.output).resolve()}")


if __name__ == "__main__":
    main()
