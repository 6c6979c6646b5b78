import numpy as np
from vispy import scene
from vispy.visuals.transforms import STTransform

# Particle color (green, brightened for the additive glow)
SWIRL_RGB = np.array([0.15, 1.2, 0.45])


class SwirlVisual:
    """
    A spiral particle cloud marking one window of the registry.

    Positions are in screen pixels: the visual is centered on the window's
    center and eases toward a new target each frame, so moving a window
    makes its swirl glide across every other window.
    """

    def __init__(self, parent, index, center, n_particles=2000, falloff=0.05, seed=None):
        self.index = index
        self.falloff = falloff

        rng = np.random.default_rng(seed)
        i = np.arange(n_particles)
        angle = i / n_particles * np.pi * 8  # Multiple spirals
        radius = i / n_particles * 200

        self.radius = radius
        self.angle = angle
        self.velocity = np.column_stack(
            [np.cos(angle + np.pi / 2) * 2, np.sin(angle + np.pi / 2) * 2]
        )
        self.ages = rng.random(n_particles)
        self.opacities = rng.random(n_particles) * 0.8 + 0.2

        self.position = np.asarray(center, dtype=float)
        self.target = self.position.copy()

        self.markers = scene.visuals.Markers(parent=parent)
        self.markers.set_gl_state("additive", depth_test=False)
        self.markers.transform = STTransform(translate=self.position)

    def update_target(self, center):
        self.target = np.asarray(center, dtype=float)

    def particle_positions(self, t):
        """Particle offsets from the swirl center at shared time t."""
        spiral_time = t * 0.5 + self.index * 0.3
        angle = self.angle + spiral_time * 0.002 * (1.0 + self.radius * 0.01)

        pos = np.column_stack([np.cos(angle), np.sin(angle)]) * self.radius[:, None]
        pos += self.velocity * (np.sin(t * 0.001 + self.ages * 2 * np.pi) * 10.0)[:, None]
        pos[:, 1] += np.sin(t * 0.0005 + self.ages * np.pi) * 20.0
        return pos

    def animate(self, t):
        self.position += (self.target - self.position) * self.falloff
        self.markers.transform.translate = self.position

        alpha = self.opacities * (0.6 + 0.4 * np.sin(t * 0.01 + self.ages * 2 * np.pi))
        colors = np.empty((len(self.ages), 4), dtype=np.float32)
        colors[:, 0] = SWIRL_RGB[0]
        colors[:, 1] = SWIRL_RGB[1] + np.sin(self.ages * np.pi) * 0.3
        colors[:, 2] = SWIRL_RGB[2]
        colors[:, 3] = alpha
        np.clip(colors, 0.0, 1.0, out=colors)

        sizes = 2.0 + np.sin(t * 0.01 + self.ages * 10.0)
        self.markers.set_data(
            self.particle_positions(t),
            face_color=colors,
            edge_width=0,
            size=sizes,
        )

    def remove(self):
        self.markers.parent = None
