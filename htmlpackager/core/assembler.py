# -*- coding: utf-8 -*-
from __future__ import annotations

import html
import json
from typing import Any, Dict, List, Optional

from htmlpackager.config import APP_NAME
from htmlpackager.models import LoadedResources, PackagerConfig, PlayerOptions, ProjectPayload

CSP = "default-src 'unsafe-inline' 'unsafe-eval' data: blob:"

PLAYER_CSS = """body {
  background: #000;
  margin: 0;
  overflow: hidden;
}
.player {
  position: absolute;
}
.splash, .error {
  position: absolute;
  top: 0;
  left: 0;
  width: 100%;
  height: 100%;
  background: #000;
  display: table;
  color: #fff;
  cursor: default;
}
.error {
  display: none;
}
.splash > div,
.error > div {
  display: table-cell;
  height: 100%;
  text-align: center;
  vertical-align: middle;
}
.progress {
  width: 80%;
  height: 16px;
  border: 1px solid #fff;
  margin: 0 auto;
}
.progress-bar {
  background: #fff;
  width: 10%;
  height: 100%;
}
h1 {
  font: 300 72px Helvetica Neue, Helvetica, Arial, sans-serif;
  margin: 0 0 16px;
}
p {
  font: 300 24px/1.5 Helvetica Neue, Helvetica, Arial, sans-serif;
  margin: 0;
  color: rgba(255, 255, 255, .6);
}
.error a {
  color: #fff;
}"""

PLAYER_SETUP_JS = """(function () {
  'use strict';

  var splash = document.querySelector('.splash');
  var error = document.querySelector('.error');
  var progressBarFill = document.querySelector('.progress-bar');

  var player = new P.player.Player();
  var errorHandler = new P.player.ErrorHandler(player, {
    container: document.querySelector('.error-report'),
  });
  player.onprogress.subscribe(function(progress) {
    progressBarFill.style.width = (10 + progress * 90) + '%';
  });
  player.onerror.subscribe(function(e) {
    player.exitFullscreen();
    error.style.display = 'table';
  });
  document.querySelector('.player').appendChild(player.root);

  document.addEventListener('touchmove', function(e) {
    e.preventDefault();
  });
"""

ASSET_MANAGER_JS_HEAD = """
  P.io.setAssetManager(new class {
    constructor() {
      // Assets...
      this.data = """

ASSET_MANAGER_JS_TAIL = """;
    }

    loadSoundbankFile(src) {
      return this.fetch('soundbank/' + src).then(function(e) { return e.arrayBuffer(); });
    }

    loadFont(src) {
      return this.fetch(src).then(function(e) { return e.blob(); });
    }

    fetch(u) {
      return fetch(this.data[u]);
    }
  });
"""

PLAYER_START_JS = """
  player.setOptions(playerOptions);
  if (controlsOptions) {
    player.addControls(controlsOptions);
  }

  fetch(project)
    .then(function(request) { return request.arrayBuffer(); })
    .then(function(buffer) { return player.loadProjectFromBuffer(buffer, type); })
    .then(function() {
      var stage = player.stage;
      // Post-load script...
"""

PLAYER_END_JS = """
      // End of post-load script.
      player.enterFullscreen();
      splash.style.display = 'none';
    })
    .catch(function(e) {
      player.handleError(e);
    });
}());"""


def asset_lookup_literal(binaries: Dict[str, str]) -> str:
    """Object literal mapping each asset key to its data: URI, in manifest order."""
    return json.dumps(binaries)


def _player_script(
    binaries: Dict[str, str],
    project: ProjectPayload,
    post_load_script: str,
    player_options: Dict[str, Any],
    controls_options: Optional[Dict[str, Any]],
) -> str:
    parts: List[str] = [
        PLAYER_SETUP_JS,
        ASSET_MANAGER_JS_HEAD,
        asset_lookup_literal(binaries),
        ASSET_MANAGER_JS_TAIL,
        "\n  // Project type...\n",
        f"  var type = '{project.format.value}';\n",
        "  // Project data...\n",
        f"  var project = '{project.data_url}';\n",
        "\n  // Player options...\n",
        f"  var playerOptions = {json.dumps(player_options)};\n",
        "  // Controls options...\n",
        f"  var controlsOptions = {json.dumps(controls_options)};\n",
        PLAYER_START_JS,
        post_load_script,
        PLAYER_END_JS,
    ]
    return "".join(parts)


def assemble(
    resources: LoadedResources,
    project: ProjectPayload,
    config: PackagerConfig,
    player_options: Optional[PlayerOptions] = None,
    controls_options: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Build the standalone HTML document.

    Pure: no I/O, no clock, no randomness. The three config fields are pasted
    in verbatim; the loading text lands in markup, the custom style in its own
    <style> block and the post-load script in executable code. None of them is
    escaped.
    """
    player_options = player_options or PlayerOptions()

    splash_title = f"<h1>{config.loading_text}</h1>" if config.loading_text else ""

    script = _player_script(
        binaries=resources.binaries,
        project=project,
        post_load_script=config.post_load_script,
        player_options=player_options.to_json_dict(),
        controls_options=controls_options,
    )

    html_out = f"""<!DOCTYPE html>
<!-- Generated by the {html.escape(APP_NAME)} -->
<html>
  <head>
    <meta charset="utf-8">
    <meta http-equiv="Content-Security-Policy" content="{CSP}">
    <style>
/* Runtime styles... */
{resources.styles}
/* Player styles... */
{PLAYER_CSS}
    </style>
    <style>
/* Custom style... */
{config.custom_style}
    </style>
  </head>
  <body>

    <div class="player"></div>
    <div class="splash">
      <div>
        {splash_title}
        <div class="progress">
          <div class="progress-bar"></div>
        </div>
      </div>
    </div>
    <div class="error">
      <div>
        <h1>Internal Error</h1>
        <p class="error-report"></p>
      </div>
    </div>

    <script>
// Runtime scripts...
{resources.scripts}
// Player scripts...
{script}
    </script>
  </body>
</html>
"""
    return html_out
