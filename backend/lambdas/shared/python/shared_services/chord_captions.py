"""Chord caption records captured from a single video, used to seed the chord catalog."""

CHORD_CAPTION_DATA = [
    {'chord_name': 'D#', 'fret_position': 'Pos2', 'start_time': '0:09', 'end_time': '0:19'},
    {'chord_name': 'D#', 'fret_position': 'Open', 'start_time': '0:09', 'end_time': '0:19'},
    {'chord_name': 'C', 'fret_position': 'Open', 'start_time': '0:21', 'end_time': '1:19'},
    {'chord_name': 'F7sus4', 'fret_position': 'Pos6', 'start_time': '0:29', 'end_time': '1:19'},
    {'chord_name': 'D', 'fret_position': 'Open', 'start_time': '1:09', 'end_time': '2:19'},
    {'chord_name': 'F7sus4', 'fret_position': 'Pos6', 'start_time': '3:09', 'end_time': '3:19'},
    {'chord_name': 'D', 'fret_position': 'Open', 'start_time': '3:09', 'end_time': '3:19'},
    {'chord_name': 'A', 'fret_position': 'Pos1', 'start_time': '4:22', 'end_time': '4:32'},
    {'chord_name': 'A#', 'fret_position': 'Pos3v2', 'start_time': '4:24', 'end_time': '4:34'},
]
