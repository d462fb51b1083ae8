"""
CareAlert listener service.

Runs on the sender's device: keeps a speech-triggered capture source
alive, maps recognized phrases to alert commands and submits them to the
relay.
"""
