"""
WebRTC session with the robot

Receives the robot's video and audio tracks and relays them as RTP to local
ports, where the decode session picks them up through an SDP description.
"""

import asyncio
import logging

import aiohttp
from aiortc import RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaRecorder

from .errors import SignalingError

logger = logging.getLogger(__name__)

SIGNALING_PORT = 8081
SIGNALING_TIMEOUT = 10
RELAY_HOST = "127.0.0.1"


def create_peer_connection():
    """
    Create a receive-only peer connection for the robot's media

    Returns:
        RTCPeerConnection: Configured peer connection
    """
    pc = RTCPeerConnection()
    pc.addTransceiver("video", direction="recvonly")
    pc.addTransceiver("audio", direction="recvonly")
    # the robot only answers offers that carry its data channel
    pc.createDataChannel("data")
    logger.info("Peer connection created (recvonly video/audio)")
    return pc


def setup_connection_handlers(pc, closed):
    """
    Setup event handlers for peer connection state changes

    Args:
        pc: RTCPeerConnection instance
        closed (asyncio.Event): Set once the connection fails or closes
    """
    @pc.on("connectionstatechange")
    async def on_connectionstatechange():
        logger.info(f"Connection state changed to: {pc.connectionState}")
        if pc.connectionState == "connected":
            logger.info("WebRTC connected, relaying robot media")
        elif pc.connectionState == "failed":
            logger.error("WebRTC connection failed!")
            closed.set()
        elif pc.connectionState == "closed":
            logger.info("WebRTC connection closed")
            closed.set()

    @pc.on("iceconnectionstatechange")
    async def on_iceconnectionstatechange():
        logger.info(f"ICE state changed to: {pc.iceConnectionState}")


def signaling_url(params):
    return f"http://{params.robot_ip}:{SIGNALING_PORT}/offer"


def offer_payload(pc, params):
    return {
        "id": "STA_localNetwork",
        "sdp": pc.localDescription.sdp,
        "type": pc.localDescription.type,
        "token": params.robot_token,
    }


async def exchange_offer(pc, params, session):
    """
    Send our SDP offer to the robot and apply its answer

    Args:
        pc: RTCPeerConnection instance
        params (ConnectionParameters): Robot endpoint and token
        session (aiohttp.ClientSession): HTTP session

    Raises:
        SignalingError: If the robot does not return a usable answer
    """
    offer = await pc.createOffer()
    # aiortc finishes ICE gathering here
    await pc.setLocalDescription(offer)

    url = signaling_url(params)
    logger.info(f"Sending offer to {url}")
    try:
        async with session.post(
            url,
            json=offer_payload(pc, params),
            timeout=aiohttp.ClientTimeout(total=SIGNALING_TIMEOUT),
        ) as resp:
            resp.raise_for_status()
            data = await resp.json(content_type=None)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        raise SignalingError(f"Offer to {url} failed: {e}") from e

    if not isinstance(data, dict) or not data.get("sdp"):
        raise SignalingError(f"Robot returned no SDP answer: {data!r}")

    answer = RTCSessionDescription(sdp=data["sdp"], type=data.get("type", "answer"))
    await pc.setRemoteDescription(answer)
    logger.info("Remote description (answer) set")


class RtpRelay:
    """Forwards received tracks to local RTP ports, one muxer per track"""

    def __init__(self, host=RELAY_HOST):
        self.host = host
        self.recorders = []

    async def add_track(self, track, port):
        url = f"rtp://{self.host}:{port}"
        recorder = MediaRecorder(url, format="rtp")
        recorder.addTrack(track)
        await recorder.start()
        self.recorders.append(recorder)
        logger.info(f"Relaying {track.kind} track to {url}")

    async def stop(self):
        for recorder in self.recorders:
            await recorder.stop()
        self.recorders.clear()


def configure_debug_logging(debug):
    level = logging.DEBUG if debug else logging.WARNING
    for name in ("aiortc", "aioice"):
        logging.getLogger(name).setLevel(level)


async def connect_robot(params):
    """
    Run one WebRTC session with the robot

    Returns when the peer connection fails or closes.

    Args:
        params (ConnectionParameters): Robot endpoint, token and relay ports

    Raises:
        SignalingError: If the robot address is missing or signaling fails
    """
    if not params.robot_ip:
        raise SignalingError("robot_ip is not set")

    configure_debug_logging(params.debug_webrtc)

    pc = create_peer_connection()
    relay = RtpRelay()
    closed = asyncio.Event()
    setup_connection_handlers(pc, closed)
    ports = {"video": params.video_port, "audio": params.audio_port}

    @pc.on("track")
    async def on_track(track):
        logger.info(f"Received {track.kind} track")
        await relay.add_track(track, ports[track.kind])

    logger.info(f"Connecting to robot at {params.robot_ip}...")
    try:
        async with aiohttp.ClientSession() as session:
            await exchange_offer(pc, params, session)
        await closed.wait()
    finally:
        await relay.stop()
        await pc.close()
        logger.info("Robot session cleanup complete")
