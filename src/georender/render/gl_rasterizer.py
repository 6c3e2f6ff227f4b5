"""
OpenGL rasterizer based on a headless moderngl context

The fisheye projection is not linear, hence it is applied per vertex in the vertex shader.
Triangles are small compared to the field of view, so the resulting distortion of straight
triangle edges is neglected.
"""
import logging
from typing import List, Optional, Sequence

import moderngl
import numpy as np

from georender.camera.fisheye_camera import FisheyeCamera
from georender.camera.intrinsics import Intrinsics
from georender.render.rasterizer import Rasterizer, RenderedImage
from georender.render.tile_model import TileModel

logger = logging.getLogger(__name__)

CLEAR_COLOR = (0.1, 0.2, 0.3, 1.0)

VERTEX_SHADER = """
#version 330

uniform mat4 view;
uniform float xi;
uniform vec2 focal;
uniform vec2 center;
uniform float far;

in vec3 in_position;
in vec2 in_uv;

out vec2 v_uv;
out float v_depth;

void main() {
    vec4 view_pos = view * vec4(in_position, 1.0);
    // x right, y down, z along the viewing direction
    vec3 cam = vec3(view_pos.x, -view_pos.y, -view_pos.z);
    float dist = length(cam);
    float norm = cam.z + xi * dist;
    vec2 ndc = focal * cam.xy / norm + center;
    float z = clamp(dist / far, 0.0, 1.0) * 2.0 - 1.0;
    if (norm <= 0.0) {
        z = 2.0;
    }
    gl_Position = vec4(ndc.x, -ndc.y, z, 1.0);
    v_uv = in_uv;
    v_depth = cam.z;
}
"""

FRAGMENT_SHADER = """
#version 330

uniform sampler2D diffuse;

in vec2 v_uv;
in float v_depth;

layout(location = 0) out vec4 out_color;
layout(location = 1) out float out_depth;

void main() {
    out_color = vec4(texture(diffuse, v_uv).rgb, 1.0);
    out_depth = v_depth;
}
"""


class _GpuModel:
    def __init__(self, ctx: moderngl.Context, program: moderngl.Program, model: TileModel):
        mesh = model.mesh
        vertices = np.hstack([
            np.asarray(mesh.vertices, dtype=np.float32),
            np.asarray(mesh.visual.uv, dtype=np.float32),
        ])
        self.vbo = ctx.buffer(np.ascontiguousarray(vertices).tobytes())
        self.ibo = ctx.buffer(np.asarray(mesh.faces, dtype=np.uint32).tobytes())
        self.vao = ctx.vertex_array(program, [(self.vbo, "3f 2f", "in_position", "in_uv")],
                                    index_buffer=self.ibo, index_element_size=4)

        image = model.texture.image
        # v = 0 addresses the first uploaded row, the northern edge
        self.texture = ctx.texture((image.shape[1], image.shape[0]), 3, image.tobytes(), alignment=1)
        self.texture.build_mipmaps(max_level=model.texture.mip_levels - 1)
        self.texture.filter = (moderngl.NEAREST_MIPMAP_NEAREST, moderngl.LINEAR)
        self.texture.repeat_x = False
        self.texture.repeat_y = False

    def render(self) -> None:
        self.texture.use(location=0)
        self.vao.render(moderngl.TRIANGLES)

    def release(self) -> None:
        self.vao.release()
        self.vbo.release()
        self.ibo.release()
        self.texture.release()


class GLRasterizer(Rasterizer):
    """
    Renders colour and depth images of tile models with a fisheye camera
    """

    def __init__(self, intrinsics: Intrinsics, ctx: Optional[moderngl.Context] = None, far_m: float = 100_000.0):
        """
        :param intrinsics: intrinsics of the camera, define the image size
        :param ctx: ModernGL context, a standalone context is created if None
        :param far_m: distances beyond far_m are clipped
        """
        self.intrinsics = intrinsics
        self.far_m = far_m
        self._owns_ctx = ctx is None
        self.ctx = ctx if ctx is not None else moderngl.create_standalone_context()
        self.program = self.ctx.program(vertex_shader=VERTEX_SHADER, fragment_shader=FRAGMENT_SHADER)
        self.program["diffuse"].value = 0

        size = (intrinsics.image_width_px, intrinsics.image_height_px)
        self.color_texture = self.ctx.texture(size, 4)
        self.depth_texture = self.ctx.texture(size, 1, dtype="f4")
        self.depth_buffer = self.ctx.depth_renderbuffer(size)
        self.fbo = self.ctx.framebuffer(color_attachments=[self.color_texture, self.depth_texture],
                                        depth_attachment=self.depth_buffer)
        self.depth_fbo = self.ctx.framebuffer(color_attachments=[self.depth_texture])
        self.models: List[_GpuModel] = []
        logger.debug(f"Created rasterizer for {size[0]}x{size[1]} images")

    def prepare(self, models: Sequence[TileModel]) -> None:
        self._release_models()
        self.models = [_GpuModel(self.ctx, self.program, model) for model in models]
        logger.debug(f"Uploaded {len(self.models)} tile models")

    def render(self, camera: FisheyeCamera, origin: Sequence[float]) -> RenderedImage:
        local_camera = FisheyeCamera(camera.position - np.asarray(origin, dtype=np.float64), camera.intrinsics,
                                     camera.forward, camera.up)
        params = local_camera.shader_parameters()
        self.program["view"].write(params["view"].tobytes())
        self.program["xi"].value = params["xi"]
        self.program["focal"].value = params["focal"]
        self.program["center"].value = params["center"]
        self.program["far"].value = self.far_m

        self.fbo.clear(*CLEAR_COLOR, depth=1.0)
        self.depth_fbo.clear(0.0, 0.0, 0.0, 0.0)
        self.fbo.use()
        self.ctx.enable(moderngl.DEPTH_TEST | moderngl.CULL_FACE)
        self.ctx.front_face = "ccw"
        for model in self.models:
            model.render()

        width, height = self.intrinsics.image_width_px, self.intrinsics.image_height_px
        rgba = np.frombuffer(self.fbo.read(components=4, attachment=0), dtype=np.uint8).reshape(height, width, 4)
        depth = np.frombuffer(self.fbo.read(components=1, attachment=1, dtype="f4"),
                              dtype=np.float32).reshape(height, width)
        # OpenGL images start at the bottom row
        return RenderedImage(np.flipud(rgba).copy(), np.flipud(depth).copy())

    def _release_models(self) -> None:
        for model in self.models:
            model.release()
        self.models = []

    def release(self) -> None:
        self._release_models()
        self.fbo.release()
        self.depth_fbo.release()
        self.color_texture.release()
        self.depth_texture.release()
        self.depth_buffer.release()
        self.program.release()
        if self._owns_ctx:
            self.ctx.release()
