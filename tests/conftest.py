"""Shared fixtures: a representative annotated header and small helpers."""

from __future__ import annotations

import pytest

from beamsplitter.directives import ResolvedHeader, resolve
from beamsplitter.parser import parse

SAMPLE_HEADER = """\
#pragma once

#include <math/vec3.h>

#include <stdint.h>

namespace filament {

/**
 * Settings for the view.
 */
class View {
public:
    enum class QualityLevel : uint8_t {
        LOW,
        MEDIUM,
        HIGH,
        ULTRA
    };

    enum class BlendMode : uint8_t {
        OPAQUE,
        TRANSLUCENT,
    };

    using Callback = void(*)(void* user);

    /**
     * Options to control the bloom effect.
     */
    struct BloomOptions {
        Texture* dirt = nullptr;           //!< user dirt texture %codegen_skip_json% %codegen_skip_javascript%
        float dirtStrength = 0.2f;         //!< strength of the dirt texture
        uint8_t levels = 6;                //!< number of blur levels
        BlendMode blendMode = BlendMode::TRANSLUCENT;
        bool enabled = false;
        math::float3 tint = {1.0f, 1.0f, 1.0f};
        Callback callback = nullptr;       //!< %codegen_skip_json% %codegen_skip_javascript%
    };

    struct FogOptions {
        float distance = 0.0f;
        double density = 0.1;              //!< fog density %codegen_java_float%
        LinearColor color = {1.0f, 1.0f, 1.0f};
        QualityLevel quality = QualityLevel::LOW;
        bool enabled = false;
    };

    /**
     * Options for temporal anti-aliasing.
     */
    struct TemporalAntiAliasingOptions {
        /** @{ */
        float filterWidth = 1.0f;          //!< reconstruction filter width
        float feedback = 0.04f;
        /** @} */
        bool enabled = false;
    };

    BloomOptions getBloomOptions() const noexcept { return mBloom; }

private:
    BloomOptions mBloom;
};

} // namespace filament
"""

SCENARIO_HEADER = "namespace N { struct S { int x = 1; float3 y = {1,2,3}; }; enum class E { A, B, C }; }"


@pytest.fixture()
def sample_text() -> str:
    return SAMPLE_HEADER


@pytest.fixture()
def scenario_text() -> str:
    return SCENARIO_HEADER


@pytest.fixture()
def sample_resolved() -> ResolvedHeader:
    return resolve(parse(SAMPLE_HEADER, "View.h"))


@pytest.fixture()
def scenario_resolved() -> ResolvedHeader:
    return resolve(parse(SCENARIO_HEADER, "scenario.h"))
