"""
Door Monitor package.

This package contains the on-device access monitor that:
- receives entry-attempt signals (motion sensor bridge over TCP, manual override over HTTP)
- captures a still photo of the visitor
- asks the remote face-recognition service whether the visitor is whitelisted
- greets known visitors and records unknown ones as numbered intruder folders
"""
