# -*- coding: utf-8 -*-
# Generated by the protocol buffer compiler.  DO NOT EDIT!
# source: gpushare/device_plugin/api.proto
"""Generated protocol buffer code."""
from google.protobuf.internal import builder as _builder
from google.protobuf import descriptor as _descriptor
from google.protobuf import descriptor_pool as _descriptor_pool
from google.protobuf import symbol_database as _symbol_database
# @@protoc_insertion_point(imports)

_sym_db = _symbol_database.Default()




DESCRIPTOR = _descriptor_pool.Default().AddSerializedFile(b'\n gpushare/device_plugin/api.proto\x12\x07v1beta1\"]\n\x13\x44\x65vicePluginOptions\x12\x1a\n\x12pre_start_required\x18\x01 \x01(\x08\x12*\n\"get_preferred_allocation_available\x18\x02 \x01(\x08\"z\n\x0fRegisterRequest\x12\x0f\n\x07version\x18\x01 \x01(\t\x12\x10\n\x08\x65ndpoint\x18\x02 \x01(\t\x12\x15\n\rresource_name\x18\x03 \x01(\t\x12-\n\x07options\x18\x04 \x01(\x0b\x32\x1c.v1beta1.DevicePluginOptions\"\x07\n\x05\x45mpty\"8\n\x14ListAndWatchResponse\x12 \n\x07\x64\x65vices\x18\x01 \x03(\x0b\x32\x0f.v1beta1.Device\"$\n\x06\x44\x65vice\x12\n\n\x02ID\x18\x01 \x01(\t\x12\x0e\n\x06health\x18\x02 \x01(\t\".\n\x18PreStartContainerRequest\x12\x12\n\ndevicesIDs\x18\x01 \x03(\t\"\x1b\n\x19PreStartContainerResponse\"f\n\x1aPreferredAllocationRequest\x12H\n\x12\x63ontainer_requests\x18\x01 \x03(\x0b\x32,.v1beta1.ContainerPreferredAllocationRequest\"{\n#ContainerPreferredAllocationRequest\x12\x1b\n\x13\x61vailable_deviceIDs\x18\x01 \x03(\t\x12\x1e\n\x16must_include_deviceIDs\x18\x02 \x03(\t\x12\x17\n\x0f\x61llocation_size\x18\x03 \x01(\x05\"i\n\x1bPreferredAllocationResponse\x12J\n\x13\x63ontainer_responses\x18\x01 \x03(\x0b\x32-.v1beta1.ContainerPreferredAllocationResponse\"9\n$ContainerPreferredAllocationResponse\x12\x11\n\tdeviceIDs\x18\x01 \x03(\t\"P\n\x0f\x41llocateRequest\x12=\n\x12\x63ontainer_requests\x18\x01 \x03(\x0b\x32!.v1beta1.ContainerAllocateRequest\".\n\x18\x43ontainerAllocateRequest\x12\x12\n\ndevicesIDs\x18\x01 \x03(\t\"S\n\x10\x41llocateResponse\x12?\n\x13\x63ontainer_responses\x18\x01 \x03(\x0b\x32\".v1beta1.ContainerAllocateResponse\"\xc8\x02\n\x19\x43ontainerAllocateResponse\x12:\n\x04\x65nvs\x18\x01 \x03(\x0b\x32,.v1beta1.ContainerAllocateResponse.EnvsEntry\x12\x1e\n\x06mounts\x18\x02 \x03(\x0b\x32\x0e.v1beta1.Mount\x12$\n\x07\x64\x65vices\x18\x03 \x03(\x0b\x32\x13.v1beta1.DeviceSpec\x12H\n\x0b\x61nnotations\x18\x04 \x03(\x0b\x32\x33.v1beta1.ContainerAllocateResponse.AnnotationsEntry\x1a+\n\tEnvsEntry\x12\x0b\n\x03key\x18\x01 \x01(\t\x12\r\n\x05value\x18\x02 \x01(\t:\x02\x38\x01\x1a\x32\n\x10\x41nnotationsEntry\x12\x0b\n\x03key\x18\x01 \x01(\t\x12\r\n\x05value\x18\x02 \x01(\t:\x02\x38\x01\"E\n\x05Mount\x12\x16\n\x0e\x63ontainer_path\x18\x01 \x01(\t\x12\x11\n\thost_path\x18\x02 \x01(\t\x12\x11\n\tread_only\x18\x03 \x01(\x08\"L\n\nDeviceSpec\x12\x16\n\x0e\x63ontainer_path\x18\x01 \x01(\t\x12\x11\n\thost_path\x18\x02 \x01(\t\x12\x13\n\x0bpermissions\x18\x03 \x01(\t2F\n\x0cRegistration\x12\x36\n\x08Register\x12\x18.v1beta1.RegisterRequest\x1a\x0e.v1beta1.Empty\"\x00\x32\xa3\x03\n\x0c\x44\x65vicePlugin\x12H\n\x16GetDevicePluginOptions\x12\x0e.v1beta1.Empty\x1a\x1c.v1beta1.DevicePluginOptions\"\x00\x12\x41\n\x0cListAndWatch\x12\x0e.v1beta1.Empty\x1a\x1d.v1beta1.ListAndWatchResponse\"\x00\x30\x01\x12\x65\n\x16GetPreferredAllocation\x12#.v1beta1.PreferredAllocationRequest\x1a$.v1beta1.PreferredAllocationResponse\"\x00\x12\x41\n\x08\x41llocate\x12\x18.v1beta1.AllocateRequest\x1a\x19.v1beta1.AllocateResponse\"\x00\x12\\\n\x11PreStartContainer\x12!.v1beta1.PreStartContainerRequest\x1a\".v1beta1.PreStartContainerResponse\"\x00\x62\x06proto3')

_builder.BuildMessageAndEnumDescriptors(DESCRIPTOR, globals())
_builder.BuildTopDescriptorsAndMessages(DESCRIPTOR, 'gpushare.device_plugin.api_pb2', globals())
if _descriptor._USE_C_DESCRIPTORS == False:

  DESCRIPTOR._options = None
  _CONTAINERALLOCATERESPONSE_ENVSENTRY._options = None
  _CONTAINERALLOCATERESPONSE_ENVSENTRY._serialized_options = b'8\001'
  _CONTAINERALLOCATERESPONSE_ANNOTATIONSENTRY._options = None
  _CONTAINERALLOCATERESPONSE_ANNOTATIONSENTRY._serialized_options = b'8\001'
  _DEVICEPLUGINOPTIONS._serialized_start=45
  _DEVICEPLUGINOPTIONS._serialized_end=138
  _REGISTERREQUEST._serialized_start=140
  _REGISTERREQUEST._serialized_end=262
  _EMPTY._serialized_start=264
  _EMPTY._serialized_end=271
  _LISTANDWATCHRESPONSE._serialized_start=273
  _LISTANDWATCHRESPONSE._serialized_end=329
  _DEVICE._serialized_start=331
  _DEVICE._serialized_end=367
  _PRESTARTCONTAINERREQUEST._serialized_start=369
  _PRESTARTCONTAINERREQUEST._serialized_end=415
  _PRESTARTCONTAINERRESPONSE._serialized_start=417
  _PRESTARTCONTAINERRESPONSE._serialized_end=444
  _PREFERREDALLOCATIONREQUEST._serialized_start=446
  _PREFERREDALLOCATIONREQUEST._serialized_end=548
  _CONTAINERPREFERREDALLOCATIONREQUEST._serialized_start=550
  _CONTAINERPREFERREDALLOCATIONREQUEST._serialized_end=673
  _PREFERREDALLOCATIONRESPONSE._serialized_start=675
  _PREFERREDALLOCATIONRESPONSE._serialized_end=780
  _CONTAINERPREFERREDALLOCATIONRESPONSE._serialized_start=782
  _CONTAINERPREFERREDALLOCATIONRESPONSE._serialized_end=839
  _ALLOCATEREQUEST._serialized_start=841
  _ALLOCATEREQUEST._serialized_end=921
  _CONTAINERALLOCATEREQUEST._serialized_start=923
  _CONTAINERALLOCATEREQUEST._serialized_end=969
  _ALLOCATERESPONSE._serialized_start=971
  _ALLOCATERESPONSE._serialized_end=1054
  _CONTAINERALLOCATERESPONSE._serialized_start=1057
  _CONTAINERALLOCATERESPONSE._serialized_end=1385
  _CONTAINERALLOCATERESPONSE_ENVSENTRY._serialized_start=1290
  _CONTAINERALLOCATERESPONSE_ENVSENTRY._serialized_end=1333
  _CONTAINERALLOCATERESPONSE_ANNOTATIONSENTRY._serialized_start=1335
  _CONTAINERALLOCATERESPONSE_ANNOTATIONSENTRY._serialized_end=1385
  _MOUNT._serialized_start=1387
  _MOUNT._serialized_end=1456
  _DEVICESPEC._serialized_start=1458
  _DEVICESPEC._serialized_end=1534
  _REGISTRATION._serialized_start=1536
  _REGISTRATION._serialized_end=1606
  _DEVICEPLUGIN._serialized_start=1609
  _DEVICEPLUGIN._serialized_end=2028
# @@protoc_insertion_point(module_scope)
