"""Configuration settings for VendHub navigation."""

CONFIG = {
    # Location tracking
    "step_proximity_threshold": 30,  # meters - step counts as reached inside this radius
    "approaching_distance": 100,  # meters - announce the next step once inside this radius
    "update_interval": 3000,  # ms - maximum age of a watched fix
    "high_accuracy": True,
    "current_position_timeout": 10000,  # ms - one-shot position request
    "watch_position_timeout": 30000,  # ms - continuous position watch
    # Voice
    "speech_language": "ru-RU",
    "speech_rate": 1.0,
    "speech_pitch": 1.0,
    "speech_volume": 1.0,
    "step_pause": 0.5,  # seconds between utterances in speak_all_steps
    "espeak_base_wpm": 175,  # espeak words per minute at rate 1.0
    # Achievements
    "achievement_show_delay": 0.5,  # seconds before the first pending toast
    "achievement_next_delay": 0.3,  # seconds after a dismiss before the next toast
    "seen_achievements_key": "vendhub-achievements",
    "store_path": "vendhub_store.db",
    "store_namespace": "vendhub",
    # Directions
    "osrm_url": "https://router.project-osrm.org",
    "osrm_profile": "foot",
    "osrm_timeout": 30,  # seconds per HTTP request
    "directions_retry_time": 20.0,  # seconds of retries before giving up
    "log_interval": 10,  # seconds between position log entries
    # Default map center (Tashkent)
    "default_lat": 41.2995,
    "default_lng": 69.2401,
}
