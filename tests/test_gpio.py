"""Tests for the gpiozero output driver."""

import pytest

from gpiozero.pins.mock import MockFactory

from pizero_relay.adapters.gpio import GpioZeroDriver
from pizero_relay.core import GpioSetupError, Level


def test_configure_drives_initial_level(gpio_driver, mock_factory):
    gpio_driver.configure_as_output(0, Level.HIGH)
    gpio_driver.configure_as_output(1, Level.LOW)

    assert mock_factory.pin(17).state
    assert not mock_factory.pin(18).state
    assert gpio_driver.read_level(0) is Level.HIGH
    assert gpio_driver.read_level(1) is Level.LOW


def test_write_level_switches_pin(gpio_driver, mock_factory):
    gpio_driver.configure_as_output(3, Level.HIGH)

    gpio_driver.write_level(3, Level.LOW)
    assert not mock_factory.pin(22).state

    gpio_driver.write_level(3, Level.HIGH)
    assert mock_factory.pin(22).state


def test_line_count_follows_pin_map(mock_factory):
    driver = GpioZeroDriver([5, 6, 13], pin_factory=mock_factory)

    assert driver.line_count == 3
    assert driver.pin_for(2) == 13


def test_unmapped_line_raises(gpio_driver):
    with pytest.raises(GpioSetupError):
        gpio_driver.pin_for(16)


def test_write_before_configure_raises(gpio_driver):
    with pytest.raises(GpioSetupError):
        gpio_driver.write_level(0, Level.LOW)


def test_empty_pin_map_is_rejected():
    with pytest.raises(GpioSetupError):
        GpioZeroDriver([])


def test_pin_already_claimed_raises_setup_error(mock_factory):
    first = GpioZeroDriver([17], pin_factory=mock_factory)
    second = GpioZeroDriver([17], pin_factory=mock_factory)
    first.configure_as_output(0, Level.HIGH)

    with pytest.raises(GpioSetupError):
        second.configure_as_output(0, Level.HIGH)

    first.close()


def test_close_releases_pins(mock_factory):
    first = GpioZeroDriver([17], pin_factory=mock_factory)
    first.configure_as_output(0, Level.HIGH)
    first.close()

    second = GpioZeroDriver([17], pin_factory=mock_factory)
    second.configure_as_output(0, Level.LOW)

    assert second.read_level(0) is Level.LOW
    second.close()


def test_reconfigure_replaces_device(gpio_driver):
    gpio_driver.configure_as_output(0, Level.HIGH)
    gpio_driver.configure_as_output(0, Level.LOW)

    assert gpio_driver.read_level(0) is Level.LOW


def test_simulated_driver_uses_mock_pins():
    driver = GpioZeroDriver.simulated([17, 18])
    try:
        driver.configure_as_output(0, Level.HIGH)
        driver.write_level(0, Level.LOW)

        assert driver.read_level(0) is Level.LOW
        assert isinstance(driver._pin_factory, MockFactory)
    finally:
        driver.close()
