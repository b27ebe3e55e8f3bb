import torch
import torch.nn as nn
import cv2

import numpy as np
from typing import List, Optional
import logging
from torchvision.models import resnet50

from gym_kiosk.models.face import BoundingBox, DetectedFace

logger = logging.getLogger(__name__)


class FaceEmbeddingModel(nn.Module):

    def __init__(self, embedding_size=128):
        super(FaceEmbeddingModel, self).__init__()
        self.backbone = resnet50(weights=None)
        self.backbone.fc = nn.Linear(self.backbone.fc.in_features, embedding_size)
        self.backbone_bn = nn.BatchNorm1d(embedding_size)
        self.backbone_bn.bias.requires_grad_(False)

    def forward(self, x):
        x = self.backbone(x)
        x = self.backbone_bn(x)
        return x


class FaceDetector:
    """Finds faces in a BGR frame and computes a descriptor for each one."""

    def __init__(self, model_path: str, embedding_size: int = 128):
        self.device = torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        self.embedding_size = embedding_size

        self.model = FaceEmbeddingModel(embedding_size)
        self.model.load_state_dict(torch.load(model_path, map_location=self.device))
        logger.info(f"Face embedding model loaded from {model_path}")

        self.model.to(self.device)
        self.model.eval()

        self.face_cascade = cv2.CascadeClassifier(
            cv2.data.haarcascades + 'haarcascade_frontalface_default.xml'
        )

        logger.info("FaceDetector initialized")

    def find_faces(self, image: np.ndarray) -> List[tuple]:

        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        faces = self.face_cascade.detectMultiScale(
            gray,
            scaleFactor=1.1,
            minNeighbors=5,
            minSize=(30, 30)
        )
        return list(faces)

    def extract_embedding(self, face_image: np.ndarray) -> Optional[np.ndarray]:

        face_resized = cv2.resize(face_image, (112, 112))
        face_rgb = cv2.cvtColor(face_resized, cv2.COLOR_BGR2RGB)
        face_tensor = torch.from_numpy(face_rgb).permute(2, 0, 1).float() / 255.0
        face_tensor = face_tensor.unsqueeze(0).to(self.device)

        with torch.no_grad():
            embedding = self.model(face_tensor)
            embedding = embedding.cpu().numpy().flatten()

        norm = np.linalg.norm(embedding)
        if not np.isfinite(norm) or norm == 0:
            return None
        return embedding / norm

    def detect(self, image: np.ndarray) -> List[DetectedFace]:
        height, width = image.shape[:2]

        detections = []
        for (x, y, w, h) in self.find_faces(image):
            face_roi = image[y:y+h, x:x+w]
            if face_roi.size == 0:
                continue

            descriptor = self.extract_embedding(face_roi)
            if descriptor is None:
                logger.debug("Skipping face with degenerate embedding")
                continue

            detections.append(DetectedFace(
                box=BoundingBox(
                    x=x / width,
                    y=y / height,
                    width=w / width,
                    height=h / height
                ),
                descriptor=descriptor.astype(float).tolist()
            ))

        logger.debug(f"Detected {len(detections)} face(s)")
        return detections
