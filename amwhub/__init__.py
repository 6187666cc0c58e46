"""
AMW Hub YouTube Live Notification Bridge

This package subscribes the hub's YouTube streamers to PubSubHubbub feed
updates and marks the matching streamer live when a new video is announced.
"""

__version__ = "1.0.0"
