"""Bar jukebox: shared queue and Spotify playback synchronization."""
