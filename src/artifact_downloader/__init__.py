"""
artifact-downloader: locate and retrieve build artifacts from App Store Connect
(Xcode Cloud) and Firebase App Distribution.
"""
